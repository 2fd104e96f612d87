# ledger/rank.py
import logging
from typing import Optional
from extensions import db
from models import User, MlmRankHistory, MlmRank
from ledger.config import MarketplaceConfig

logger = logging.getLogger(__name__)


class RankHelper:

    @staticmethod
    def determine_new_rank(direct_referrals: int, current_rank: str) -> str:
        """
        First matching rule wins:

        1. 31+ direct referrals and not yet executive -> executive
        2. 16+ direct referrals as associate, or any partner -> director
        3. 6+ direct referrals as associate -> partner

        A partner therefore moves to director on its next direct referral.
        """
        thresholds = MarketplaceConfig.RANK_THRESHOLDS
        if direct_referrals >= thresholds['executive'] and current_rank != MlmRank.EXECUTIVE.value:
            new_rank = MlmRank.EXECUTIVE.value
        elif (direct_referrals >= thresholds['director'] and current_rank == MlmRank.ASSOCIATE.value) \
                or current_rank == MlmRank.PARTNER.value:
            new_rank = MlmRank.DIRECTOR.value
        elif direct_referrals >= thresholds['partner'] and current_rank == MlmRank.ASSOCIATE.value:
            new_rank = MlmRank.PARTNER.value
        else:
            new_rank = current_rank

        # ranks only move up
        if MarketplaceConfig.rank_index(new_rank) < MarketplaceConfig.rank_index(current_rank):
            return current_rank
        return new_rank

    @staticmethod
    def check_rank_promotion(user: User) -> Optional[MlmRankHistory]:
        """Apply the rank rule to a user; a history row is written only on change."""
        old_rank = user.mlm_rank or MlmRank.ASSOCIATE.value
        new_rank = RankHelper.determine_new_rank(user.direct_referrals or 0, old_rank)
        if new_rank == old_rank:
            return None

        user.mlm_rank = new_rank
        history = MlmRankHistory(
            user_id=user.id,
            old_rank=old_rank,
            new_rank=new_rank,
            direct_referrals=user.direct_referrals or 0,
            total_referrals=user.total_referrals or 0,
        )
        db.session.add(history)
        logger.info(f"User {user.id} promoted {old_rank} -> {new_rank} ({user.direct_referrals} direct referrals)")
        return history
