# ledger/valuation.py
"""
Coin valuation.

The persisted value in ``system_settings`` is the system of record and only
moves through ``persist_coin_value``. ``calculate_dynamic_coin_value`` is a
read-only alternative derived from completed-project performance.
"""
import logging
from decimal import Decimal
from typing import NamedTuple, Dict, Any, Optional
from sqlalchemy import and_, update
from extensions import db
from models import (
    SystemSetting, Holding, Project, ProjectInvestment, Distribution,
    CoinValueHistory, ProjectStatus, InvestmentStatus,
)
from ledger.config import MarketplaceConfig
from ledger.exceptions import StaleStateError
from ledger.unit_of_work import atomic
from utils import to_decimal

logger = logging.getLogger(__name__)


class CoinValueState(NamedTuple):
    """Coin value as read from the store. version 0 means the setting does not exist yet."""
    value: Decimal
    version: int


class CoinValuationHelper:

    @staticmethod
    def get_coin_value_state() -> CoinValueState:
        setting = SystemSetting.query.filter_by(
            setting_key=MarketplaceConfig.COIN_VALUE_SETTING_KEY
        ).first()
        if not setting:
            return CoinValueState(MarketplaceConfig.BASE_COIN_VALUE, 0)
        return CoinValueState(
            to_decimal(setting.setting_value, MarketplaceConfig.BASE_COIN_VALUE),
            setting.version or 0
        )

    @staticmethod
    def get_current_coin_value() -> Decimal:
        return CoinValuationHelper.get_coin_value_state().value

    @staticmethod
    def get_total_coins_outstanding() -> Decimal:
        total = db.session.query(db.func.sum(Holding.coins_owned)).scalar()
        return to_decimal(total)

    @staticmethod
    def calculate_dynamic_coin_value() -> Decimal:
        """
        Base value plus the investment-weighted average ROI of completed projects.
        Projects without active investment are skipped.
        """
        rows = db.session.query(
            Project.id,
            Project.profit,
            db.func.coalesce(db.func.sum(ProjectInvestment.amount_eur), 0)
        ).outerjoin(
            ProjectInvestment,
            and_(
                ProjectInvestment.project_id == Project.id,
                ProjectInvestment.status == InvestmentStatus.ACTIVE.value
            )
        ).filter(
            Project.status == ProjectStatus.COMPLETED.value
        ).group_by(Project.id, Project.profit).all()

        base_value = MarketplaceConfig.BASE_COIN_VALUE
        total_invested = Decimal('0')
        weighted_roi = Decimal('0')

        for _project_id, profit, invested in rows:
            invested = to_decimal(invested)
            if invested <= 0:
                continue
            project_roi = to_decimal(profit) / invested * Decimal('100')
            weighted_roi += project_roi * invested
            total_invested += invested

        if total_invested == 0:
            return base_value

        avg_roi = weighted_roi / total_invested
        return MarketplaceConfig.coin_value(base_value + base_value * (avg_roi / Decimal('100')))

    @staticmethod
    def persist_coin_value(state: CoinValueState, new_value: Decimal) -> CoinValueState:
        """
        Compare-and-set the persisted coin value against the version that was read.
        Must run inside the caller's unit of work.
        """
        new_value = MarketplaceConfig.coin_value(new_value)
        key = MarketplaceConfig.COIN_VALUE_SETTING_KEY

        if state.version == 0:
            if SystemSetting.query.filter_by(setting_key=key).first():
                raise StaleStateError("Coin value changed, please retry")
            db.session.add(SystemSetting(setting_key=key, setting_value=str(new_value), version=1))
            db.session.flush()
            return CoinValueState(new_value, 1)

        result = db.session.execute(
            update(SystemSetting)
            .where(SystemSetting.setting_key == key, SystemSetting.version == state.version)
            .values(setting_value=str(new_value), version=state.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Stale coin value write: expected version {state.version}")
            raise StaleStateError("Coin value changed, please retry")

        # keep the identity map in step with the row we just wrote
        setting = SystemSetting.query.filter_by(setting_key=key).first()
        if setting is not None:
            db.session.refresh(setting)
        return CoinValueState(new_value, state.version + 1)

    @staticmethod
    def record_history(coin_value: Decimal, coins_outstanding: Decimal, reason: str,
                       reference_id: Optional[int] = None) -> CoinValueHistory:
        total_pool = db.session.query(db.func.sum(Distribution.to_coin_pool)).scalar()
        entry = CoinValueHistory(
            coin_value=coin_value,
            coins_outstanding=coins_outstanding,
            total_coin_pool=MarketplaceConfig.money(to_decimal(total_pool)),
            reason=reason,
            reference_id=reference_id,
        )
        db.session.add(entry)
        return entry

    @staticmethod
    def revalue_to_dynamic() -> Dict[str, Any]:
        """Persist the dynamic valuation as the new system-of-record value."""
        with atomic():
            state = CoinValuationHelper.get_coin_value_state()
            dynamic_value = CoinValuationHelper.calculate_dynamic_coin_value()
            new_state = CoinValuationHelper.persist_coin_value(state, dynamic_value)
            CoinValuationHelper.record_history(
                new_state.value,
                CoinValuationHelper.get_total_coins_outstanding(),
                'revaluation'
            )

        logger.info(f"Coin value revalued from {state.value} to {new_state.value}")
        return {
            "previous_value": float(state.value),
            "new_value": float(new_state.value),
            "version": new_state.version,
        }
