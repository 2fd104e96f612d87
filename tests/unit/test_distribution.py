"""Project completion and per-project revenue distribution."""

from decimal import Decimal

import pytest

from extensions import db
from models import (
    Distribution, CoinValueHistory, ProjectRevenue, InvestorRevenuePayout, InvestorPortfolio, Project,
    ProjectStatus,
)
from ledger.distribution import DistributionHelper
from ledger.exceptions import DistributionError, NotFoundError, ValidationError
from ledger.valuation import CoinValuationHelper, CoinValueState


class TestSplitAmount:

    @pytest.mark.parametrize("amount", ["4000", "0.01", "0.05", "1234.57", "999999.99"])
    def test_split_sums_to_amount(self, amount):
        pool, admin = DistributionHelper.split_amount(Decimal(amount))
        assert pool + admin == Decimal(amount)

    def test_eighty_twenty(self):
        assert DistributionHelper.split_amount(Decimal("4000")) == (Decimal("3200.00"), Decimal("800.00"))


class TestPlanProfitDistribution:

    def test_documented_scenario(self):
        plan = DistributionHelper.plan_profit_distribution(
            Decimal("4000"), Decimal("50"), CoinValueState(Decimal("10.0"), 1)
        )
        assert plan["to_pool"] == Decimal("3200")
        assert plan["to_admin"] == Decimal("800")
        assert plan["value_increase_per_coin"] == Decimal("64")
        assert plan["new_coin_value"] == Decimal("74")

    @pytest.mark.parametrize("profit", ["0", "-0.01", "-500"])
    def test_non_positive_profit_rejected(self, profit):
        with pytest.raises(DistributionError, match="No profit to distribute"):
            DistributionHelper.plan_profit_distribution(
                Decimal(profit), Decimal("50"), CoinValueState(Decimal("10"), 1)
            )

    def test_zero_coins_outstanding_rejected(self):
        with pytest.raises(DistributionError):
            DistributionHelper.plan_profit_distribution(
                Decimal("4000"), Decimal("0"), CoinValueState(Decimal("10"), 1)
            )


class TestCompleteProject:

    def test_completion_raises_coin_value(self, make_user, make_holding, make_project):
        make_holding(make_user(), 20)
        make_holding(make_user(), 30)
        project = make_project(cost=Decimal("1000"))

        result = DistributionHelper.complete_project(project.id, Decimal("5000"))

        assert result["profit"] == 4000.0
        assert result["to_pool"] == 3200.0
        assert result["to_admin"] == 800.0
        assert result["value_increase_per_coin"] == 64.0
        assert result["new_coin_value"] == 74.0

        state = CoinValuationHelper.get_coin_value_state()
        assert state == CoinValueState(Decimal("74"), 2)

        project = db.session.get(Project, project.id)
        assert project.status == ProjectStatus.COMPLETED.value
        assert project.profit == Decimal("4000")
        assert project.actual_completion is not None

        distribution = Distribution.query.one()
        assert distribution.to_coin_pool + distribution.to_admin == distribution.total_profit
        history = CoinValueHistory.query.filter_by(reason="project_distribution").one()
        assert history.coin_value == Decimal("74")
        assert history.reference_id == project.id

    @pytest.mark.parametrize("revenue", ["1000", "500"])
    def test_no_profit_mutates_nothing(self, make_user, make_holding, make_project, revenue):
        make_holding(make_user(), 50)
        project = make_project(cost=Decimal("1000"))

        with pytest.raises(DistributionError):
            DistributionHelper.complete_project(project.id, Decimal(revenue))

        assert Distribution.query.count() == 0
        assert CoinValueHistory.query.count() == 0
        assert CoinValuationHelper.get_coin_value_state() == CoinValueState(Decimal("10"), 1)
        project = db.session.get(Project, project.id)
        assert project.status == ProjectStatus.FUNDING.value
        assert project.profit is None

    def test_no_coins_outstanding_fails_cleanly(self, make_project):
        project = make_project(cost=Decimal("1000"))

        with pytest.raises(DistributionError):
            DistributionHelper.complete_project(project.id, Decimal("5000"))

        assert Distribution.query.count() == 0
        assert CoinValuationHelper.get_current_coin_value() == Decimal("10")

    def test_cannot_complete_twice(self, make_user, make_holding, make_project):
        make_holding(make_user(), 50)
        project = make_project(cost=Decimal("1000"))
        DistributionHelper.complete_project(project.id, Decimal("5000"))

        with pytest.raises(ValidationError):
            DistributionHelper.complete_project(project.id, Decimal("9000"))

        assert Distribution.query.count() == 1
        assert CoinValuationHelper.get_current_coin_value() == Decimal("74")

    def test_unknown_project(self, app):
        with pytest.raises(NotFoundError):
            DistributionHelper.complete_project(9999, Decimal("5000"))


class TestPlanRevenueDistribution:

    def test_documented_scenario(self):
        plan = DistributionHelper.plan_revenue_distribution(
            Decimal("1000"), [(2, Decimal("700")), (1, Decimal("300"))]
        )
        shares = {p["user_id"]: p["share"] for p in plan["payouts"]}

        assert plan["investor_share"] == Decimal("800")
        assert plan["admin_share"] == Decimal("200")
        assert shares == {1: Decimal("240"), 2: Decimal("560")}
        roi = {p["user_id"]: p["roi_percentage"] for p in plan["payouts"]}
        assert roi == {1: Decimal("80"), 2: Decimal("80")}

    @pytest.mark.parametrize("amount", [Decimal("NaN"), "Infinity", Decimal("1e30")])
    def test_non_finite_or_oversized_amount_rejected(self, amount):
        with pytest.raises(ValidationError):
            DistributionHelper.plan_revenue_distribution(amount, [(1, Decimal("300"))])

    def test_residual_cents_are_allocated(self):
        stakes = [(1, Decimal("100")), (2, Decimal("100")), (3, Decimal("100"))]
        plan = DistributionHelper.plan_revenue_distribution(Decimal("100"), stakes)

        total = sum(p["share"] for p in plan["payouts"])
        assert total == plan["investor_share"] == Decimal("80.00")
        assert sorted(p["share"] for p in plan["payouts"]) == [Decimal("26.66"), Decimal("26.67"), Decimal("26.67")]

    def test_shares_are_proportional(self):
        stakes = [(1, Decimal("123.45")), (2, Decimal("876.55")), (3, Decimal("0.01"))]
        plan = DistributionHelper.plan_revenue_distribution(Decimal("777.77"), stakes)

        total_stake = sum(s for _, s in stakes)
        for payout in plan["payouts"]:
            exact = plan["investor_share"] * payout["stake"] / total_stake
            assert abs(payout["share"] - exact) < Decimal("0.01")
        assert sum(p["share"] for p in plan["payouts"]) == plan["investor_share"]

    def test_no_investors(self):
        with pytest.raises(DistributionError, match="No investors found"):
            DistributionHelper.plan_revenue_distribution(Decimal("1000"), [])

    def test_non_positive_amount(self):
        with pytest.raises(ValidationError):
            DistributionHelper.plan_revenue_distribution(Decimal("0"), [(1, Decimal("10"))])


class TestDistributeProjectRevenue:

    def test_payouts_persisted_per_investor(self, make_user, make_project, make_investment):
        small, large = make_user(), make_user()
        project = make_project()
        make_investment(small, project, 100)
        make_investment(small, project, 200)
        make_investment(large, project, 700)

        result = DistributionHelper.distribute_project_revenue(project.id, Decimal("1000"))

        assert result["investor_share"] == 800.0
        assert result["admin_share"] == 200.0
        revenue = ProjectRevenue.query.one()
        assert revenue.distributed_to_investors == Decimal("800")
        assert revenue.distributed_to_admin == Decimal("200")

        payouts = {p.user_id: p for p in InvestorRevenuePayout.query.all()}
        assert len(payouts) == 2
        assert payouts[small.id].amount_eur == Decimal("240")
        assert payouts[large.id].amount_eur == Decimal("560")
        assert payouts[small.id].payout_method == "cash"

    def test_portfolio_summaries_refreshed(self, make_user, make_project, make_investment):
        small, large = make_user(), make_user()
        project = make_project()
        make_investment(small, project, 300)
        make_investment(large, project, 700)

        DistributionHelper.distribute_project_revenue(project.id, Decimal("1000"))

        summary = db.session.get(InvestorPortfolio, small.id)
        assert summary.total_revenue_received == Decimal("240")
        assert summary.total_invested_eur == Decimal("300")
        assert summary.total_roi_percentage == Decimal("80")
        assert db.session.get(InvestorPortfolio, large.id).total_revenue_received == Decimal("560")

    def test_project_without_investors(self, make_project):
        project = make_project()

        with pytest.raises(DistributionError):
            DistributionHelper.distribute_project_revenue(project.id, Decimal("1000"))

        assert ProjectRevenue.query.count() == 0

    def test_unknown_project(self, app):
        with pytest.raises(NotFoundError):
            DistributionHelper.distribute_project_revenue(424242, Decimal("1000"))
