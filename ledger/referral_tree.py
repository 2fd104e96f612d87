from typing import Optional, Dict, Any
from extensions import db
from models import User, ReferralTree
from ledger.config import MarketplaceConfig
from ledger.exceptions import NotFoundError, ValidationError
import logging


logger = logging.getLogger(__name__)


class ReferralTreeHelper:
    """
    Three-level referral network. Each referred user gets one referral_tree row
    holding a snapshot of its referrer and the referrer's two nearest ancestors.
    """

    @staticmethod
    def get_tree(user_id: int) -> Optional[ReferralTree]:
        return ReferralTree.query.filter_by(user_id=user_id).first()

    @staticmethod
    def _get_or_create_root(user_id: int) -> ReferralTree:
        """Referrers that signed up without a referrer get a depth-0 root row."""
        tree = ReferralTreeHelper.get_tree(user_id)
        if tree is None:
            tree = ReferralTree(user_id=user_id, depth_level=0, network_size=0, network_value=0)
            db.session.add(tree)
            db.session.flush()
        return tree

    @staticmethod
    def build_referral_tree(new_user_id: int, referrer_id: int) -> ReferralTree:
        """
        Add a new user under `referrer_id`.
        Must be called inside an existing unit of work (no commit here).
        """
        if new_user_id == referrer_id:
            logger.warning(f"User {new_user_id} attempted self-referral")
            raise ValidationError("You cannot refer yourself")

        new_user = db.session.get(User, new_user_id)
        referrer = db.session.get(User, referrer_id)
        if not new_user or not referrer:
            raise NotFoundError("User not found")

        if ReferralTreeHelper.get_tree(new_user_id) is not None:
            raise ValidationError("User already belongs to a referral network")

        referrer_tree = ReferralTreeHelper._get_or_create_root(referrer_id)

        tree = ReferralTree(user_id=new_user_id)
        tree.parent_id = referrer_id
        tree.level_1_parent_id = referrer_id
        tree.level_2_parent_id = referrer_tree.level_1_parent_id
        tree.level_3_parent_id = referrer_tree.level_2_parent_id
        tree.depth_level = (referrer_tree.depth_level or 0) + 1
        tree.network_size = 0
        tree.network_value = 0
        db.session.add(tree)

        new_user.referred_by = referrer_id

        ancestor_ids = [
            pid for pid in (referrer_id, referrer_tree.level_1_parent_id, referrer_tree.level_2_parent_id)
            if pid
        ]
        for ancestor_tree in ReferralTree.query.filter(ReferralTree.user_id.in_(ancestor_ids)).all():
            ancestor_tree.network_size = (ancestor_tree.network_size or 0) + 1

        db.session.flush()
        logger.info(
            f"Referral tree built for user {new_user_id}: l1={tree.level_1_parent_id} "
            f"l2={tree.level_2_parent_id} l3={tree.level_3_parent_id} depth={tree.depth_level}"
        )
        return tree

    @staticmethod
    def register_by_code(new_user_id: int, referral_code: str) -> ReferralTree:
        """Signup path: resolve a referral code to its owner and build the tree."""
        code = (referral_code or "").strip().lower()
        referrer = User.query.filter_by(referral_code=code).first()
        if not referrer:
            logger.warning(f"Unknown referral code '{code}' for user {new_user_id}")
            raise ValidationError("Invalid referral code")
        return ReferralTreeHelper.build_referral_tree(new_user_id, referrer.id)

    @staticmethod
    def get_upline(user_id: int):
        """[(level, ancestor_id)] from the snapshot; empty for users without a referrer."""
        tree = ReferralTreeHelper.get_tree(user_id)
        return tree.ancestors() if tree else []

    @staticmethod
    def get_network_summary(user_id: int) -> Dict[str, Any]:
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        tree = ReferralTreeHelper.get_tree(user_id)
        level_counts = {}
        for level, column in (
            (1, ReferralTree.level_1_parent_id),
            (2, ReferralTree.level_2_parent_id),
            (3, ReferralTree.level_3_parent_id),
        ):
            level_counts[level] = ReferralTree.query.filter(column == user_id).count()

        direct = User.query.filter_by(referred_by=user_id).order_by(User.created_at.desc()).all()

        return {
            "user_id": user_id,
            "referral_code": user.referral_code,
            "mlm_rank": user.mlm_rank,
            "direct_referrals": user.direct_referrals or 0,
            "total_referrals": user.total_referrals or 0,
            "tree": tree.to_dict() if tree else None,
            "levels": level_counts,
            "commission_rates": MarketplaceConfig.get_commission_summary()["distribution"],
            "downline": [
                {"id": u.id, "name": u.name, "role": u.role, "mlm_rank": u.mlm_rank}
                for u in direct
            ],
        }
