# models.py: Flask-SQLAlchemy models for the coin marketplace ledger
import enum
from sqlalchemy import UniqueConstraint, Index, CheckConstraint, text
from flask_login import UserMixin
from extensions import db
from utils import safe_float_convert, safe_isoformat

# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class UserRole(enum.Enum):
    VISITOR = "visitor"
    INVESTOR = "investor"
    ADMIN = "admin"


class TransactionType(enum.Enum):
    BUY = "buy"
    SELL = "sell"
    SERVICE_REDEMPTION = "service_redemption"
    REDEMPTION_REFUND = "redemption_refund"


class PaymentStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ProjectStatus(enum.Enum):
    PLANNED = "planned"
    FUNDING = "funding"
    IN_PROGRESS = "in_progress"
    ACTIVE = "active"
    COMPLETED = "completed"


class InvestmentStatus(enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class BuybackStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RedemptionStatus(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class MlmRank(enum.Enum):
    ASSOCIATE = "associate"
    PARTNER = "partner"
    DIRECTOR = "director"
    EXECUTIVE = "executive"


class CommissionStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"


# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides created_at and updated_at timestamps to inheriting models."""
    created_at = db.Column(db.DateTime(timezone=True), default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True),
                           default=db.func.now(),
                           onupdate=db.func.now())

# ===========================================================
# USER MODELS
# ===========================================================

class User(UserMixin, db.Model, BaseMixin):
    """Marketplace user; a visitor until the first coin purchase."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(150), nullable=False, default="User")
    role = db.Column(db.String(20), nullable=False, default=UserRole.VISITOR.value, index=True)
    last_login = db.Column(db.DateTime(timezone=True), nullable=True)

    referral_code = db.Column(db.String(20), unique=True, nullable=True)
    referred_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    # MLM counters
    mlm_rank = db.Column(db.String(20), nullable=False, default=MlmRank.ASSOCIATE.value)
    direct_referrals = db.Column(db.Integer, nullable=False, default=0)
    total_referrals = db.Column(db.Integer, nullable=False, default=0)

    holding = db.relationship('Holding', uselist=False, back_populates='user')

    __table_args__ = (
        Index('idx_user_referral_code', 'referral_code'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "referralCode": self.referral_code,
            "referredBy": self.referred_by,
            "mlmRank": self.mlm_rank,
            "directReferrals": self.direct_referrals or 0,
            "totalReferrals": self.total_referrals or 0,
            "lastLogin": safe_isoformat(self.last_login),
            "memberSince": safe_isoformat(self.created_at),
        }

# ===========================================================
# HOLDINGS & COIN TRANSACTIONS
# ===========================================================

class Holding(db.Model, BaseMixin):
    """One row per investor: coins owned and cost basis."""
    __tablename__ = 'holdings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    coins_owned = db.Column(db.Numeric(18, 4), nullable=False, default=0, server_default=text("0"))
    total_invested = db.Column(db.Numeric(18, 2), nullable=False, default=0, server_default=text("0"))
    avg_purchase_price = db.Column(db.Numeric(18, 6), nullable=False, default=0, server_default=text("0"))

    user = db.relationship('User', back_populates='holding')

    __table_args__ = (
        CheckConstraint('coins_owned >= 0', name='chk_holding_coins_non_negative'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "coins_owned": safe_float_convert(self.coins_owned),
            "total_invested": safe_float_convert(self.total_invested),
            "avg_purchase_price": safe_float_convert(self.avg_purchase_price),
            "updated_at": safe_isoformat(self.updated_at),
        }


class CoinTransaction(db.Model, BaseMixin):
    """Append-only log of buys, sells and service redemptions."""
    __tablename__ = 'coin_transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    transaction_type = db.Column(db.String(30), nullable=False)
    coins = db.Column(db.Numeric(18, 4), nullable=False)
    price_per_coin = db.Column(db.Numeric(18, 6), nullable=False)
    total_amount = db.Column(db.Numeric(18, 2), nullable=False)
    payment_method = db.Column(db.String(50), nullable=True)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_coin_tx_user_created', 'user_id', 'created_at'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "transaction_type": self.transaction_type,
            "coins": safe_float_convert(self.coins),
            "price_per_coin": safe_float_convert(self.price_per_coin),
            "total_amount": safe_float_convert(self.total_amount),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "created_at": safe_isoformat(self.created_at),
            "completed_at": safe_isoformat(self.completed_at),
        }

# ===========================================================
# PROJECTS & INVESTMENTS
# ===========================================================

class ProjectCategory(db.Model):
    __tablename__ = 'project_categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    icon = db.Column(db.String(50))
    color = db.Column(db.String(20))

    def to_dict(self):
        return {"id": self.id, "name": self.name, "icon": self.icon, "color": self.color}


class Project(db.Model, BaseMixin):
    __tablename__ = 'projects'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    client_name = db.Column(db.String(150))
    category_id = db.Column(db.Integer, db.ForeignKey('project_categories.id'), nullable=True)
    is_featured = db.Column(db.Boolean, default=False)

    target_capital_eur = db.Column(db.Numeric(18, 2), default=0)
    current_funding_eur = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    min_investment_eur = db.Column(db.Numeric(18, 2), nullable=True)
    max_investment_eur = db.Column(db.Numeric(18, 2), nullable=True)
    investor_count = db.Column(db.Integer, nullable=False, default=0)

    cost = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    expected_revenue = db.Column(db.Numeric(18, 2), nullable=True)
    actual_revenue = db.Column(db.Numeric(18, 2), nullable=True)
    profit = db.Column(db.Numeric(18, 2), nullable=True)
    status = db.Column(db.String(20), nullable=False, default=ProjectStatus.PLANNED.value, index=True)

    start_date = db.Column(db.Date, nullable=True)
    expected_completion = db.Column(db.Date, nullable=True)
    actual_completion = db.Column(db.DateTime(timezone=True), nullable=True)

    category = db.relationship('ProjectCategory', backref='projects')

    def funding_percentage(self):
        target = safe_float_convert(self.target_capital_eur)
        if not target:
            return None
        return round(safe_float_convert(self.current_funding_eur) * 100.0 / target, 1)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "client_name": self.client_name,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "is_featured": bool(self.is_featured),
            "target_capital_eur": safe_float_convert(self.target_capital_eur),
            "current_funding_eur": safe_float_convert(self.current_funding_eur),
            "funding_percentage": self.funding_percentage(),
            "min_investment_eur": safe_float_convert(self.min_investment_eur, None),
            "max_investment_eur": safe_float_convert(self.max_investment_eur, None),
            "investor_count": self.investor_count or 0,
            "cost": safe_float_convert(self.cost),
            "expected_revenue": safe_float_convert(self.expected_revenue, None),
            "actual_revenue": safe_float_convert(self.actual_revenue, None),
            "profit": safe_float_convert(self.profit, None),
            "status": self.status,
            "start_date": safe_isoformat(self.start_date),
            "expected_completion": safe_isoformat(self.expected_completion),
            "actual_completion": safe_isoformat(self.actual_completion),
        }


class ProjectInvestment(db.Model, BaseMixin):
    """A user's stake in one project, priced at the coin value of the day."""
    __tablename__ = 'project_investments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    amount_coins = db.Column(db.Numeric(18, 4), nullable=False)
    amount_eur = db.Column(db.Numeric(18, 2), nullable=False)
    coin_price_at_investment = db.Column(db.Numeric(18, 6), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=InvestmentStatus.ACTIVE.value)

    project = db.relationship('Project', backref=db.backref('investments', lazy='dynamic'))

    __table_args__ = (
        Index('idx_investment_project_status', 'project_id', 'status'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "amount_coins": safe_float_convert(self.amount_coins),
            "amount_eur": safe_float_convert(self.amount_eur),
            "coin_price_at_investment": safe_float_convert(self.coin_price_at_investment),
            "status": self.status,
            "created_at": safe_isoformat(self.created_at),
        }

# ===========================================================
# REVENUE, DISTRIBUTIONS & COIN VALUE
# ===========================================================

class ProjectRevenue(db.Model, BaseMixin):
    """One revenue distribution event for a project."""
    __tablename__ = 'project_revenue'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    revenue_date = db.Column(db.Date, nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    distributed_to_investors = db.Column(db.Numeric(18, 2), nullable=False)
    distributed_to_admin = db.Column(db.Numeric(18, 2), nullable=False)
    distribution_completed = db.Column(db.Boolean, default=True)

    payouts = db.relationship('InvestorRevenuePayout', backref='revenue_event', lazy='dynamic')

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "revenue_date": safe_isoformat(self.revenue_date),
            "amount": safe_float_convert(self.amount),
            "distributed_to_investors": safe_float_convert(self.distributed_to_investors),
            "distributed_to_admin": safe_float_convert(self.distributed_to_admin),
            "distribution_completed": bool(self.distribution_completed),
        }


class InvestorRevenuePayout(db.Model, BaseMixin):
    __tablename__ = 'investor_revenue_payouts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    project_revenue_id = db.Column(db.Integer, db.ForeignKey('project_revenue.id'), nullable=False, index=True)
    amount_eur = db.Column(db.Numeric(18, 2), nullable=False)
    payout_method = db.Column(db.String(20), nullable=False, default="cash")
    roi_percentage = db.Column(db.Numeric(12, 4), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint('project_revenue_id', 'user_id', name='uq_payout_event_user'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "project_revenue_id": self.project_revenue_id,
            "amount_eur": safe_float_convert(self.amount_eur),
            "payout_method": self.payout_method,
            "roi_percentage": safe_float_convert(self.roi_percentage),
            "created_at": safe_isoformat(self.created_at),
        }


class InvestorPortfolio(db.Model):
    """Denormalized per-user summary. Rebuilt from source tables, never edited."""
    __tablename__ = 'investor_portfolios'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    total_invested_coins = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    total_invested_eur = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    total_revenue_received = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    total_roi_percentage = db.Column(db.Numeric(12, 4), nullable=False, default=0)
    active_projects_count = db.Column(db.Integer, nullable=False, default=0)
    completed_projects_count = db.Column(db.Integer, nullable=False, default=0)
    avg_project_return = db.Column(db.Numeric(12, 4), nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), default=db.func.now())

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "total_invested_coins": safe_float_convert(self.total_invested_coins),
            "total_invested_eur": safe_float_convert(self.total_invested_eur),
            "total_revenue_received": safe_float_convert(self.total_revenue_received),
            "total_roi_percentage": safe_float_convert(self.total_roi_percentage),
            "active_projects_count": self.active_projects_count,
            "completed_projects_count": self.completed_projects_count,
            "avg_project_return": safe_float_convert(self.avg_project_return),
            "last_updated": safe_isoformat(self.last_updated),
        }


class Distribution(db.Model, BaseMixin):
    """Project-completion profit split and the resulting per-coin increase."""
    __tablename__ = 'distributions'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    total_profit = db.Column(db.Numeric(18, 2), nullable=False)
    to_coin_pool = db.Column(db.Numeric(18, 2), nullable=False)
    to_admin = db.Column(db.Numeric(18, 2), nullable=False)
    coins_outstanding = db.Column(db.Numeric(18, 4), nullable=False)
    value_increase_per_coin = db.Column(db.Numeric(18, 6), nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "total_profit": safe_float_convert(self.total_profit),
            "to_coin_pool": safe_float_convert(self.to_coin_pool),
            "to_admin": safe_float_convert(self.to_admin),
            "coins_outstanding": safe_float_convert(self.coins_outstanding),
            "value_increase_per_coin": safe_float_convert(self.value_increase_per_coin),
            "created_at": safe_isoformat(self.created_at),
        }


class CoinValueHistory(db.Model, BaseMixin):
    __tablename__ = 'coin_value_history'

    id = db.Column(db.Integer, primary_key=True)
    coin_value = db.Column(db.Numeric(18, 6), nullable=False)
    coins_outstanding = db.Column(db.Numeric(18, 4), nullable=False, default=0)
    total_coin_pool = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    reason = db.Column(db.String(50), nullable=False)
    reference_id = db.Column(db.Integer, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "coin_value": safe_float_convert(self.coin_value),
            "coins_outstanding": safe_float_convert(self.coins_outstanding),
            "total_coin_pool": safe_float_convert(self.total_coin_pool),
            "reason": self.reason,
            "reference_id": self.reference_id,
            "created_at": safe_isoformat(self.created_at),
        }


class SystemSetting(db.Model):
    """Key/value settings. `version` guards compare-and-set updates."""
    __tablename__ = 'system_settings'

    id = db.Column(db.Integer, primary_key=True)
    setting_key = db.Column(db.String(100), unique=True, nullable=False)
    setting_value = db.Column(db.String(255), nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), default=db.func.now(), onupdate=db.func.now())

# ===========================================================
# BUYBACKS & SERVICE REDEMPTIONS
# ===========================================================

class BuybackRequest(db.Model, BaseMixin):
    __tablename__ = 'buyback_requests'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    coins_to_sell = db.Column(db.Numeric(18, 4), nullable=False)
    requested_price = db.Column(db.Numeric(18, 6), nullable=False)
    total_amount = db.Column(db.Numeric(18, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=BuybackStatus.PENDING.value, index=True)
    admin_notes = db.Column(db.String(255))
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship('User')

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "coins_to_sell": safe_float_convert(self.coins_to_sell),
            "requested_price": safe_float_convert(self.requested_price),
            "total_amount": safe_float_convert(self.total_amount),
            "status": self.status,
            "admin_notes": self.admin_notes,
            "created_at": safe_isoformat(self.created_at),
            "processed_at": safe_isoformat(self.processed_at),
        }


class ServiceTier(db.Model):
    __tablename__ = 'service_tiers'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text)
    coin_cost = db.Column(db.Numeric(18, 4), nullable=False)
    service_hours = db.Column(db.Integer, default=0)
    display_order = db.Column(db.Integer, default=0)
    active = db.Column(db.Boolean, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "coin_cost": safe_float_convert(self.coin_cost),
            "service_hours": self.service_hours,
            "display_order": self.display_order,
            "active": bool(self.active),
        }


class ServiceRedemption(db.Model):
    __tablename__ = 'service_redemptions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    tier_id = db.Column(db.Integer, db.ForeignKey('service_tiers.id'), nullable=False)
    coins_spent = db.Column(db.Numeric(18, 4), nullable=False)
    project_title = db.Column(db.String(200))
    project_description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=RedemptionStatus.PENDING.value, index=True)
    admin_notes = db.Column(db.String(255))
    requested_at = db.Column(db.DateTime(timezone=True), default=db.func.now())
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    tier = db.relationship('ServiceTier')
    user = db.relationship('User')

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "tier_id": self.tier_id,
            "tier_name": self.tier.name if self.tier else None,
            "service_hours": self.tier.service_hours if self.tier else None,
            "coins_spent": safe_float_convert(self.coins_spent),
            "project_title": self.project_title,
            "project_description": self.project_description,
            "status": self.status,
            "admin_notes": self.admin_notes,
            "requested_at": safe_isoformat(self.requested_at),
            "approved_at": safe_isoformat(self.approved_at),
            "completed_at": safe_isoformat(self.completed_at),
        }

# ===========================================================
# REFERRAL TREE & MLM
# ===========================================================

class ReferralTree(db.Model, BaseMixin):
    """
    Three-level ancestor snapshot captured at signup. Ancestor ids are never
    re-derived when the ancestors themselves move.
    """
    __tablename__ = 'referral_tree'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    level_1_parent_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    level_2_parent_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    level_3_parent_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    depth_level = db.Column(db.Integer, nullable=False, default=1)
    network_size = db.Column(db.Integer, nullable=False, default=0)
    network_value = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    def ancestors(self):
        """[(level, parent_id), ...] for the populated levels only."""
        return [
            (level, parent_id)
            for level, parent_id in (
                (1, self.level_1_parent_id),
                (2, self.level_2_parent_id),
                (3, self.level_3_parent_id),
            )
            if parent_id
        ]

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "parent_id": self.parent_id,
            "level_1_parent_id": self.level_1_parent_id,
            "level_2_parent_id": self.level_2_parent_id,
            "level_3_parent_id": self.level_3_parent_id,
            "depth_level": self.depth_level,
            "network_size": self.network_size,
            "network_value": safe_float_convert(self.network_value),
        }


class MlmCommission(db.Model, BaseMixin):
    __tablename__ = 'mlm_commissions'

    id = db.Column(db.Integer, primary_key=True)
    earning_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    from_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    from_transaction_id = db.Column(db.Integer, db.ForeignKey('coin_transactions.id'), nullable=False, index=True)
    commission_level = db.Column(db.Integer, nullable=False)
    commission_percentage = db.Column(db.Numeric(6, 2), nullable=False)
    coins_purchased = db.Column(db.Numeric(18, 4), nullable=False)
    coin_value = db.Column(db.Numeric(18, 6), nullable=False)
    investment_amount = db.Column(db.Numeric(18, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(18, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=CommissionStatus.PENDING.value)
    payout_type = db.Column(db.String(20), nullable=False, default="reinvest")

    __table_args__ = (
        UniqueConstraint('from_transaction_id', 'commission_level', name='uq_commission_tx_level'),
        CheckConstraint('commission_level >= 1 AND commission_level <= 3', name='chk_commission_level_range'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "earning_user_id": self.earning_user_id,
            "from_user_id": self.from_user_id,
            "from_transaction_id": self.from_transaction_id,
            "commission_level": self.commission_level,
            "commission_percentage": safe_float_convert(self.commission_percentage),
            "coins_purchased": safe_float_convert(self.coins_purchased),
            "coin_value": safe_float_convert(self.coin_value),
            "investment_amount": safe_float_convert(self.investment_amount),
            "commission_amount": safe_float_convert(self.commission_amount),
            "status": self.status,
            "payout_type": self.payout_type,
            "created_at": safe_isoformat(self.created_at),
        }


class MlmRankHistory(db.Model, BaseMixin):
    __tablename__ = 'mlm_rank_history'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    old_rank = db.Column(db.String(20), nullable=False)
    new_rank = db.Column(db.String(20), nullable=False)
    direct_referrals = db.Column(db.Integer, nullable=False)
    total_referrals = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "old_rank": self.old_rank,
            "new_rank": self.new_rank,
            "direct_referrals": self.direct_referrals,
            "total_referrals": self.total_referrals,
            "created_at": safe_isoformat(self.created_at),
        }
