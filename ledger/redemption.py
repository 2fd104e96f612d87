# ledger/redemption.py
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Optional
from extensions import db
from models import (
    Holding, CoinTransaction, ServiceTier, ServiceRedemption,
    TransactionType, PaymentStatus, RedemptionStatus,
)
from ledger.coins import CoinTradingHelper
from ledger.config import MarketplaceConfig
from ledger.exceptions import ValidationError, InsufficientBalanceError, NotFoundError
from ledger.unit_of_work import atomic
from ledger.valuation import CoinValuationHelper
from utils import to_decimal

logger = logging.getLogger(__name__)

# action -> (allowed current statuses, resulting status)
REDEMPTION_TRANSITIONS = {
    'approve': ((RedemptionStatus.PENDING.value,), RedemptionStatus.IN_PROGRESS.value),
    'complete': ((RedemptionStatus.IN_PROGRESS.value,), RedemptionStatus.COMPLETED.value),
    'reject': ((RedemptionStatus.PENDING.value, RedemptionStatus.IN_PROGRESS.value), RedemptionStatus.REJECTED.value),
}


class ServiceRedemptionHelper:
    """Spend coins on a service tier; admins move the request through its lifecycle."""

    @staticmethod
    def get_active_tiers():
        tiers = ServiceTier.query.filter_by(active=True).order_by(ServiceTier.display_order).all()
        return [tier.to_dict() for tier in tiers]

    @staticmethod
    def redeem_service(user_id: int, tier_id: int, project_title: Optional[str] = None,
                       project_description: Optional[str] = None) -> Dict[str, Any]:
        with atomic():
            tier = db.session.get(ServiceTier, tier_id)
            if not tier or not tier.active:
                raise NotFoundError("Service tier not found")

            cost = to_decimal(tier.coin_cost)
            if cost <= 0:
                raise ValidationError("Service tier has no coin cost")

            holding = Holding.query.filter_by(user_id=user_id).first()
            owned = to_decimal(holding.coins_owned) if holding else Decimal('0')
            # coins in pending buybacks are reserved
            available = owned - CoinTradingHelper.get_pending_buyback_coins(user_id)
            if available < cost:
                logger.warning(f"Redemption of tier {tier_id} rejected for user {user_id}: {available} coins available")
                raise InsufficientBalanceError("Insufficient coins")

            holding.coins_owned = owned - cost

            redemption = ServiceRedemption(
                user_id=user_id,
                tier_id=tier.id,
                coins_spent=cost,
                project_title=project_title,
                project_description=project_description,
                status=RedemptionStatus.PENDING.value,
            )
            db.session.add(redemption)

            coin_value = CoinValuationHelper.get_current_coin_value()
            db.session.add(CoinTransaction(
                user_id=user_id,
                transaction_type=TransactionType.SERVICE_REDEMPTION.value,
                coins=cost,
                price_per_coin=coin_value,
                total_amount=MarketplaceConfig.money(cost * coin_value),
                payment_status=PaymentStatus.COMPLETED.value,
                completed_at=datetime.now(timezone.utc),
            ))

        logger.info(f"User {user_id} redeemed {cost} coins for service tier '{tier.name}'")
        return redemption.to_dict()

    @staticmethod
    def process_redemption(redemption_id: int, action: str, admin_notes: Optional[str] = None) -> Dict[str, Any]:
        if action not in REDEMPTION_TRANSITIONS:
            raise ValidationError("Invalid action")
        allowed, new_status = REDEMPTION_TRANSITIONS[action]

        with atomic():
            redemption = db.session.get(ServiceRedemption, redemption_id)
            if not redemption:
                raise NotFoundError("Redemption not found")
            if redemption.status not in allowed:
                raise ValidationError(f"Cannot {action} a redemption that is {redemption.status}")

            now = datetime.now(timezone.utc)
            if action == 'approve':
                redemption.approved_at = now
            elif action == 'complete':
                redemption.completed_at = now
            else:
                coins = to_decimal(redemption.coins_spent)
                holding = Holding.query.filter_by(user_id=redemption.user_id).first()
                if holding is None:
                    holding = Holding(user_id=redemption.user_id, coins_owned=0, total_invested=0, avg_purchase_price=0)
                    db.session.add(holding)
                holding.coins_owned = to_decimal(holding.coins_owned) + coins

                coin_value = CoinValuationHelper.get_current_coin_value()
                db.session.add(CoinTransaction(
                    user_id=redemption.user_id,
                    transaction_type=TransactionType.REDEMPTION_REFUND.value,
                    coins=coins,
                    price_per_coin=coin_value,
                    total_amount=MarketplaceConfig.money(coins * coin_value),
                    payment_status=PaymentStatus.COMPLETED.value,
                    completed_at=now,
                ))

            redemption.status = new_status
            if admin_notes is not None:
                redemption.admin_notes = admin_notes

        logger.info(f"Redemption {redemption_id} moved to {new_status}")
        return redemption.to_dict()

    @staticmethod
    def get_user_redemptions(user_id: int):
        rows = ServiceRedemption.query.filter_by(user_id=user_id).order_by(ServiceRedemption.requested_at.desc()).all()
        return [row.to_dict() for row in rows]
