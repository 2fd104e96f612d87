"""Coin value state, compare-and-set persistence and dynamic valuation."""

from decimal import Decimal

import pytest

from extensions import db
from models import SystemSetting, CoinValueHistory, ProjectStatus
from ledger.config import MarketplaceConfig
from ledger.exceptions import StaleStateError
from ledger.unit_of_work import atomic
from ledger.valuation import CoinValuationHelper, CoinValueState


class TestCoinValueState:

    def test_seeded_value_is_base(self, app):
        state = CoinValuationHelper.get_coin_value_state()
        assert state.value == Decimal("10.0")
        assert state.version == 1

    def test_missing_setting_defaults_to_base_with_version_zero(self, app):
        SystemSetting.query.delete()
        db.session.commit()

        state = CoinValuationHelper.get_coin_value_state()
        assert state == CoinValueState(MarketplaceConfig.BASE_COIN_VALUE, 0)

    def test_persist_bumps_version(self, app):
        state = CoinValuationHelper.get_coin_value_state()
        with atomic():
            new_state = CoinValuationHelper.persist_coin_value(state, Decimal("12.5"))

        assert new_state.version == state.version + 1
        assert CoinValuationHelper.get_current_coin_value() == Decimal("12.5")

    def test_stale_version_is_rejected_and_rolled_back(self, app):
        stale = CoinValuationHelper.get_coin_value_state()
        with atomic():
            CoinValuationHelper.persist_coin_value(stale, Decimal("11"))

        with pytest.raises(StaleStateError):
            with atomic():
                CoinValuationHelper.persist_coin_value(stale, Decimal("99"))

        assert CoinValuationHelper.get_current_coin_value() == Decimal("11")

    def test_persist_creates_missing_setting(self, app):
        SystemSetting.query.delete()
        db.session.commit()

        with atomic():
            new_state = CoinValuationHelper.persist_coin_value(
                CoinValuationHelper.get_coin_value_state(), Decimal("10.25")
            )

        assert new_state == CoinValueState(Decimal("10.25"), 1)
        assert CoinValuationHelper.get_coin_value_state().version == 1


class TestCoinsOutstanding:

    def test_sums_all_holdings(self, make_user, make_holding):
        make_holding(make_user(), 20)
        make_holding(make_user(), 30)
        assert CoinValuationHelper.get_total_coins_outstanding() == Decimal("50")

    def test_zero_without_holdings(self, app):
        assert CoinValuationHelper.get_total_coins_outstanding() == Decimal("0")


class TestDynamicCoinValue:

    def test_base_value_without_completed_projects(self, app, make_project):
        make_project()
        assert CoinValuationHelper.calculate_dynamic_coin_value() == MarketplaceConfig.BASE_COIN_VALUE

    def test_weighted_average_roi(self, make_user, make_project, make_investment):
        investor = make_user()
        # 50% ROI on 1000 invested, 10% ROI on 3000 invested -> weighted 20%
        first = make_project(status=ProjectStatus.COMPLETED.value, profit=Decimal("500"))
        second = make_project(status=ProjectStatus.COMPLETED.value, profit=Decimal("300"))
        make_investment(investor, first, 1000)
        make_investment(investor, second, 3000)

        assert CoinValuationHelper.calculate_dynamic_coin_value() == Decimal("12.000000")

    def test_projects_without_investment_are_skipped(self, make_user, make_project, make_investment):
        investor = make_user()
        funded = make_project(status=ProjectStatus.COMPLETED.value, profit=Decimal("100"))
        make_project(status=ProjectStatus.COMPLETED.value, profit=Decimal("100000"))
        make_investment(investor, funded, 1000)

        assert CoinValuationHelper.calculate_dynamic_coin_value() == Decimal("11.000000")

    def test_dynamic_value_is_read_only(self, make_user, make_project, make_investment):
        investor = make_user()
        project = make_project(status=ProjectStatus.COMPLETED.value, profit=Decimal("500"))
        make_investment(investor, project, 1000)

        CoinValuationHelper.calculate_dynamic_coin_value()

        assert CoinValuationHelper.get_coin_value_state().version == 1
        assert CoinValuationHelper.get_current_coin_value() == Decimal("10.0")

    def test_revalue_persists_dynamic_value_with_history(self, make_user, make_project, make_investment):
        investor = make_user()
        project = make_project(status=ProjectStatus.COMPLETED.value, profit=Decimal("500"))
        make_investment(investor, project, 1000)

        result = CoinValuationHelper.revalue_to_dynamic()

        assert result["previous_value"] == 10.0
        assert result["new_value"] == 15.0
        assert result["version"] == 2
        history = CoinValueHistory.query.filter_by(reason="revaluation").one()
        assert history.coin_value == Decimal("15")
