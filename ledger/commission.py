# ledger/commission.py
from decimal import Decimal
from typing import Dict, Any, List
import logging

from extensions import db
from models import User, MlmCommission, CoinTransaction, CommissionStatus
from ledger.config import MarketplaceConfig
from ledger.rank import RankHelper
from ledger.referral_tree import ReferralTreeHelper
from utils import to_decimal

logger = logging.getLogger(__name__)


class CommissionCalculationHelper:
    """
    Referral commissions on coin purchases: 10% / 3% / 2% of the purchase
    amount to the three snapshot ancestors of the buyer.
    """

    @staticmethod
    def calculate_commission_plan(ancestors, total_amount: Decimal) -> List[Dict[str, Any]]:
        """
        One entry per populated ancestor level.
        `ancestors` is [(level, user_id), ...] as returned by ReferralTree.ancestors().
        """
        total_amount = MarketplaceConfig.money(to_decimal(total_amount))
        plan = []
        for level, earning_user_id in ancestors:
            if level > MarketplaceConfig.MAX_LEVEL:
                continue
            rate = MarketplaceConfig.get_commission_rate(level)
            plan.append({
                'level': level,
                'earning_user_id': earning_user_id,
                'rate': rate,
                'percentage': rate * Decimal('100'),
                'amount': MarketplaceConfig.money(total_amount * rate),
            })
        return plan

    @staticmethod
    def calculate_mlm_commissions(buyer_id: int, transaction: CoinTransaction, coins: Decimal,
                                  coin_value: Decimal, total_amount: Decimal) -> List[MlmCommission]:
        """
        Persist pending commissions for a completed purchase and update the
        ancestors' referral counters and rank. Runs in the caller's unit of work.
        """
        tree = ReferralTreeHelper.get_tree(buyer_id)
        if not tree:
            return []

        plan = CommissionCalculationHelper.calculate_commission_plan(tree.ancestors(), total_amount)
        if not plan:
            return []

        commissions = []
        for entry in plan:
            earner = db.session.get(User, entry['earning_user_id'])
            if not earner:
                logger.warning(f"Level {entry['level']} ancestor {entry['earning_user_id']} of user {buyer_id} no longer exists")
                continue

            commission = MlmCommission(
                earning_user_id=earner.id,
                from_user_id=buyer_id,
                from_transaction_id=transaction.id,
                commission_level=entry['level'],
                commission_percentage=entry['percentage'],
                coins_purchased=coins,
                coin_value=coin_value,
                investment_amount=MarketplaceConfig.money(total_amount),
                commission_amount=entry['amount'],
                status=CommissionStatus.PENDING.value,
                payout_type=MarketplaceConfig.COMMISSION_PAYOUT_TYPE,
            )
            db.session.add(commission)
            commissions.append(commission)

            earner.total_referrals = (earner.total_referrals or 0) + 1
            if entry['level'] == 1:
                earner.direct_referrals = (earner.direct_referrals or 0) + 1
                RankHelper.check_rank_promotion(earner)

            earner_tree = ReferralTreeHelper.get_tree(earner.id)
            if earner_tree is not None:
                earner_tree.network_value = MarketplaceConfig.money(
                    to_decimal(earner_tree.network_value) + to_decimal(total_amount)
                )

        logger.info(
            f"Commissions for transaction {transaction.id}: "
            + ", ".join(f"L{c.commission_level}={c.commission_amount}" for c in commissions)
        )
        return commissions

    @staticmethod
    def get_user_commissions(user_id: int) -> Dict[str, Any]:
        rows = MlmCommission.query.filter_by(earning_user_id=user_id).order_by(MlmCommission.created_at.desc()).all()
        totals = {}
        for row in rows:
            totals[row.status] = totals.get(row.status, Decimal('0')) + to_decimal(row.commission_amount)
        return {
            "commissions": [row.to_dict() for row in rows],
            "total_pending": float(totals.get(CommissionStatus.PENDING.value, Decimal('0'))),
            "total_paid": float(totals.get(CommissionStatus.PAID.value, Decimal('0'))),
        }
