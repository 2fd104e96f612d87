"""Coin purchases, buyback requests and project investments."""

from decimal import Decimal

import pytest

from extensions import db
from models import (
    Holding, CoinTransaction, BuybackRequest, Project, ProjectInvestment, InvestorPortfolio, User,
    ProjectStatus,
)
from ledger.coins import CoinTradingHelper
from ledger.exceptions import InsufficientBalanceError, ValidationError, NotFoundError
from ledger.unit_of_work import atomic
from ledger.valuation import CoinValuationHelper


def _holding(user):
    return Holding.query.filter_by(user_id=user.id).first()


class TestBuyCoins:

    def test_first_purchase_creates_holding_and_upgrades_role(self, make_user):
        user = make_user()

        result = CoinTradingHelper.buy_coins(user.id, 10)

        assert result["total_amount"] == 100.0
        holding = _holding(user)
        assert holding.coins_owned == Decimal("10")
        assert holding.total_invested == Decimal("100")
        assert holding.avg_purchase_price == Decimal("10")
        assert db.session.get(User, user.id).role == "investor"

        tx = CoinTransaction.query.one()
        assert tx.transaction_type == "buy"
        assert tx.payment_status == "completed"
        assert tx.payment_method == "bank_transfer"
        assert tx.completed_at is not None

    def test_second_purchase_updates_average_price(self, make_user):
        user = make_user()
        CoinTradingHelper.buy_coins(user.id, 10)

        state = CoinValuationHelper.get_coin_value_state()
        with atomic():
            CoinValuationHelper.persist_coin_value(state, Decimal("20"))

        CoinTradingHelper.buy_coins(user.id, 10, "card")

        holding = _holding(user)
        assert holding.coins_owned == Decimal("20")
        assert holding.total_invested == Decimal("300")
        assert holding.avg_purchase_price == Decimal("15")

    def test_admin_keeps_role(self, make_user):
        admin = make_user(role="admin")
        CoinTradingHelper.buy_coins(admin.id, 1)
        assert db.session.get(User, admin.id).role == "admin"

    @pytest.mark.parametrize("coins", [0, -5, "abc", None])
    def test_invalid_amount(self, make_user, coins):
        with pytest.raises(ValidationError):
            CoinTradingHelper.buy_coins(make_user().id, coins)
        assert CoinTransaction.query.count() == 0

    def test_unknown_user(self, app):
        with pytest.raises(NotFoundError):
            CoinTradingHelper.buy_coins(999, 10)


class TestBuyback:

    def test_request_locks_current_price_without_touching_holding(self, make_user, make_holding):
        user = make_user()
        make_holding(user, 10)

        buyback = CoinTradingHelper.request_buyback(user.id, 4)

        assert buyback["status"] == "pending"
        assert buyback["requested_price"] == 10.0
        assert buyback["total_amount"] == 40.0
        assert _holding(user).coins_owned == Decimal("10")

    def test_more_than_held_is_rejected(self, make_user, make_holding):
        user = make_user()
        make_holding(user, 10)

        with pytest.raises(InsufficientBalanceError, match="Insufficient coins"):
            CoinTradingHelper.request_buyback(user.id, 11)

        assert BuybackRequest.query.count() == 0
        holding = _holding(user)
        assert holding.coins_owned == Decimal("10")
        assert holding.total_invested == Decimal("100")

    def test_pending_requests_reserve_coins(self, make_user, make_holding):
        user = make_user()
        make_holding(user, 10)
        CoinTradingHelper.request_buyback(user.id, 8)

        with pytest.raises(InsufficientBalanceError):
            CoinTradingHelper.request_buyback(user.id, 3)

    def test_approval_settles_at_requested_price(self, make_user, make_holding):
        user = make_user()
        make_holding(user, 10, avg_price=Decimal("8"))
        buyback = CoinTradingHelper.request_buyback(user.id, 5)

        state = CoinValuationHelper.get_coin_value_state()
        with atomic():
            CoinValuationHelper.persist_coin_value(state, Decimal("50"))

        result = CoinTradingHelper.process_buyback(buyback["id"], "approve", "ok")

        assert result["status"] == "approved"
        assert result["admin_notes"] == "ok"
        holding = _holding(user)
        assert holding.coins_owned == Decimal("5")
        assert holding.total_invested == Decimal("40")

        sell = CoinTransaction.query.filter_by(transaction_type="sell").one()
        assert sell.price_per_coin == Decimal("10")
        assert sell.total_amount == Decimal("50")

    def test_reject_leaves_holding(self, make_user, make_holding):
        user = make_user()
        make_holding(user, 10)
        buyback = CoinTradingHelper.request_buyback(user.id, 5)

        result = CoinTradingHelper.process_buyback(buyback["id"], "reject", "no")

        assert result["status"] == "rejected"
        assert _holding(user).coins_owned == Decimal("10")
        assert CoinTransaction.query.filter_by(transaction_type="sell").count() == 0

    def test_cannot_process_twice(self, make_user, make_holding):
        user = make_user()
        make_holding(user, 10)
        buyback = CoinTradingHelper.request_buyback(user.id, 5)
        CoinTradingHelper.process_buyback(buyback["id"], "approve")

        with pytest.raises(ValidationError):
            CoinTradingHelper.process_buyback(buyback["id"], "approve")
        assert _holding(user).coins_owned == Decimal("5")

    def test_approval_rechecks_holding(self, make_user, make_holding):
        user = make_user()
        holding = make_holding(user, 10)
        buyback = CoinTradingHelper.request_buyback(user.id, 10)
        holding.coins_owned = Decimal("3")
        db.session.commit()

        with pytest.raises(InsufficientBalanceError):
            CoinTradingHelper.process_buyback(buyback["id"], "approve")

        assert _holding(user).coins_owned == Decimal("3")
        assert db.session.get(BuybackRequest, buyback["id"]).status == "pending"

    def test_invalid_action(self, app):
        with pytest.raises(ValidationError):
            CoinTradingHelper.process_buyback(1, "maybe")


class TestInvestInProject:

    def test_investment_moves_coins_into_project(self, make_user, make_holding, make_project):
        user = make_user()
        make_holding(user, 20)
        project = make_project(min_investment_eur=Decimal("50"), max_investment_eur=Decimal("500"))

        result = CoinTradingHelper.invest_in_project(user.id, project.id, 10)

        assert result["investment"]["amount_eur"] == 100.0
        assert result["investment"]["coin_price_at_investment"] == 10.0
        assert _holding(user).coins_owned == Decimal("10")
        project = db.session.get(Project, project.id)
        assert project.current_funding_eur == Decimal("100")
        assert project.investor_count == 1

        summary = db.session.get(InvestorPortfolio, user.id)
        assert summary.total_invested_eur == Decimal("100")
        assert summary.active_projects_count == 1

    def test_investor_count_is_distinct(self, make_user, make_holding, make_project):
        user = make_user()
        make_holding(user, 20)
        project = make_project()

        CoinTradingHelper.invest_in_project(user.id, project.id, 5)
        CoinTradingHelper.invest_in_project(user.id, project.id, 5)

        assert db.session.get(Project, project.id).investor_count == 1
        assert ProjectInvestment.query.count() == 2

    @pytest.mark.parametrize("coins,message", [(4, "Minimum"), (51, "Maximum")])
    def test_bounds(self, make_user, make_holding, make_project, coins, message):
        user = make_user()
        make_holding(user, 100)
        project = make_project(min_investment_eur=Decimal("50"), max_investment_eur=Decimal("500"))

        with pytest.raises(ValidationError, match=message):
            CoinTradingHelper.invest_in_project(user.id, project.id, coins)

        assert _holding(user).coins_owned == Decimal("100")
        assert ProjectInvestment.query.count() == 0

    def test_insufficient_balance(self, make_user, make_holding, make_project):
        user = make_user()
        make_holding(user, 5)
        project = make_project()

        with pytest.raises(InsufficientBalanceError, match="Insufficient DMC balance"):
            CoinTradingHelper.invest_in_project(user.id, project.id, 6)

        assert db.session.get(Project, project.id).current_funding_eur == Decimal("0")

    def test_without_holding(self, make_user, make_project):
        with pytest.raises(InsufficientBalanceError):
            CoinTradingHelper.invest_in_project(make_user().id, make_project().id, 1)

    @pytest.mark.parametrize("status", [ProjectStatus.PLANNED.value, ProjectStatus.COMPLETED.value])
    def test_closed_project(self, make_user, make_holding, make_project, status):
        user = make_user()
        make_holding(user, 10)
        project = make_project(status=status)

        with pytest.raises(ValidationError):
            CoinTradingHelper.invest_in_project(user.id, project.id, 1)

    def test_unknown_project(self, make_user, make_holding):
        user = make_user()
        make_holding(user, 10)
        with pytest.raises(NotFoundError):
            CoinTradingHelper.invest_in_project(user.id, 777, 1)


class TestTransactions:

    def test_filtered_by_user(self, make_user):
        first, second = make_user(), make_user()
        CoinTradingHelper.buy_coins(first.id, 1)
        CoinTradingHelper.buy_coins(second.id, 2)
        CoinTradingHelper.buy_coins(first.id, 3)

        rows = CoinTradingHelper.get_transactions(first.id)
        assert [r["coins"] for r in rows] == [3.0, 1.0]
