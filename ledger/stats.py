# ledger/stats.py
from typing import Dict, Any
from extensions import db
from models import (
    User, Holding, CoinTransaction, Project, ProjectInvestment, ProjectRevenue, Distribution,
    CoinValueHistory, BuybackRequest, ServiceRedemption,
    UserRole, TransactionType, PaymentStatus, ProjectStatus, InvestmentStatus, BuybackStatus, RedemptionStatus,
)
from ledger.valuation import CoinValuationHelper
from utils import to_decimal


def _sum(column, *criteria):
    return to_decimal(db.session.query(db.func.sum(column)).filter(*criteria).scalar())


class MarketplaceStatsHelper:
    """Read-only aggregates for the public stats page and the admin views."""

    @staticmethod
    def get_platform_stats() -> Dict[str, Any]:
        return {
            "current_coin_value": float(CoinValuationHelper.get_current_coin_value()),
            "coins_outstanding": float(CoinValuationHelper.get_total_coins_outstanding()),
            "total_investors": Holding.query.filter(Holding.coins_owned > 0).count(),
            "completed_projects": Project.query.filter_by(status=ProjectStatus.COMPLETED.value).count(),
            "total_profit": float(_sum(Distribution.total_profit)),
            "total_distributed_to_pool": float(_sum(Distribution.to_coin_pool)),
        }

    @staticmethod
    def get_coin_value_history(limit: int = 100):
        rows = CoinValueHistory.query.order_by(
            CoinValueHistory.created_at.desc(), CoinValueHistory.id.desc()
        ).limit(limit).all()
        return [row.to_dict() for row in rows]

    @staticmethod
    def get_coin_value_summary() -> Dict[str, Any]:
        state = CoinValuationHelper.get_coin_value_state()
        return {
            "current_value": float(state.value),
            "version": state.version,
            "dynamic_value": float(CoinValuationHelper.calculate_dynamic_coin_value()),
        }

    @staticmethod
    def get_admin_dashboard() -> Dict[str, Any]:
        completed_buys = (
            CoinTransaction.transaction_type == TransactionType.BUY.value,
            CoinTransaction.payment_status == PaymentStatus.COMPLETED.value,
        )
        return {
            "total_investors": User.query.filter_by(role=UserRole.INVESTOR.value).count(),
            "total_coins_sold": float(_sum(CoinTransaction.coins, *completed_buys)),
            "total_capital_raised": float(_sum(CoinTransaction.total_amount, *completed_buys)),
            "active_projects": Project.query.filter(Project.status.in_((
                ProjectStatus.FUNDING.value, ProjectStatus.ACTIVE.value, ProjectStatus.IN_PROGRESS.value
            ))).count(),
            "completed_projects": Project.query.filter_by(status=ProjectStatus.COMPLETED.value).count(),
            "total_profit": float(_sum(Distribution.total_profit)),
            "admin_earnings": float(_sum(Distribution.to_admin) + _sum(ProjectRevenue.distributed_to_admin)),
            "pending_buybacks": BuybackRequest.query.filter_by(status=BuybackStatus.PENDING.value).count(),
            "current_coin_value": float(CoinValuationHelper.get_current_coin_value()),
        }

    @staticmethod
    def get_marketplace_analytics() -> Dict[str, Any]:
        open_projects = Project.query.filter(Project.status.in_((
            ProjectStatus.FUNDING.value, ProjectStatus.ACTIVE.value, ProjectStatus.IN_PROGRESS.value
        )))
        return {
            "funding_projects": Project.query.filter_by(status=ProjectStatus.FUNDING.value).count(),
            "active_projects": open_projects.count(),
            "total_funding": float(_sum(Project.current_funding_eur)),
            "total_target": float(_sum(Project.target_capital_eur)),
            "revenue_distributed": float(_sum(ProjectRevenue.distributed_to_investors)),
            "active_investors": db.session.query(
                db.func.count(db.distinct(ProjectInvestment.user_id))
            ).filter(ProjectInvestment.status == InvestmentStatus.ACTIVE.value).scalar() or 0,
            "pending_redemptions": ServiceRedemption.query.filter_by(status=RedemptionStatus.PENDING.value).count(),
        }

    @staticmethod
    def list_investors():
        rows = db.session.query(User, Holding).outerjoin(
            Holding, Holding.user_id == User.id
        ).filter(
            User.role == UserRole.INVESTOR.value
        ).order_by(User.created_at.desc()).all()

        investors = []
        for user, holding in rows:
            data = user.to_dict()
            data["holding"] = holding.to_dict() if holding else None
            investors.append(data)
        return investors
