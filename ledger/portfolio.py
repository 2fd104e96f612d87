# ledger/portfolio.py
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, List
from extensions import db
from models import (
    Holding, Project, ProjectInvestment, InvestorRevenuePayout, InvestorPortfolio,
    ProjectStatus, InvestmentStatus,
)
from ledger.config import MarketplaceConfig
from ledger.exceptions import NotFoundError
from ledger.unit_of_work import atomic
from ledger.valuation import CoinValuationHelper
from utils import to_decimal

logger = logging.getLogger(__name__)


class PortfolioHelper:
    """
    Investor portfolio views. ``investor_portfolios`` is a cache rebuilt from
    project_investments, investor_revenue_payouts and projects.
    """

    @staticmethod
    def update_investor_portfolio_summary(user_id: int) -> InvestorPortfolio:
        """Recompute and upsert one investor's summary. Runs in the caller's unit of work."""
        db.session.flush()

        total_coins, total_eur, active_projects = db.session.query(
            db.func.sum(ProjectInvestment.amount_coins),
            db.func.sum(ProjectInvestment.amount_eur),
            db.func.count(db.distinct(ProjectInvestment.project_id))
        ).filter(
            ProjectInvestment.user_id == user_id,
            ProjectInvestment.status == InvestmentStatus.ACTIVE.value
        ).one()

        total_revenue = db.session.query(
            db.func.sum(InvestorRevenuePayout.amount_eur)
        ).filter(InvestorRevenuePayout.user_id == user_id).scalar()

        completed_projects = db.session.query(
            db.func.count(db.distinct(ProjectInvestment.project_id))
        ).join(
            Project, ProjectInvestment.project_id == Project.id
        ).filter(
            ProjectInvestment.user_id == user_id,
            Project.status == ProjectStatus.COMPLETED.value
        ).scalar() or 0

        total_invested = to_decimal(total_eur)
        total_revenue = to_decimal(total_revenue)
        active_projects = active_projects or 0
        total_roi = (total_revenue / total_invested * Decimal('100')) if total_invested > 0 else Decimal('0')
        avg_return = (total_roi / active_projects) if active_projects > 0 else Decimal('0')

        summary = db.session.get(InvestorPortfolio, user_id)
        if summary is None:
            summary = InvestorPortfolio(user_id=user_id)
            db.session.add(summary)

        summary.total_invested_coins = MarketplaceConfig.coins(to_decimal(total_coins))
        summary.total_invested_eur = MarketplaceConfig.money(total_invested)
        summary.total_revenue_received = MarketplaceConfig.money(total_revenue)
        summary.total_roi_percentage = MarketplaceConfig.percent(total_roi)
        summary.active_projects_count = active_projects
        summary.completed_projects_count = completed_projects
        summary.avg_project_return = MarketplaceConfig.percent(avg_return)
        summary.last_updated = datetime.now(timezone.utc)

        logger.debug(f"Portfolio summary refreshed for user {user_id}: invested={total_invested}, revenue={total_revenue}")
        return summary

    @staticmethod
    def rebuild_all_portfolios() -> int:
        """Recompute every investor's summary from source tables."""
        with atomic():
            user_ids = [
                row[0] for row in db.session.query(ProjectInvestment.user_id).distinct().all()
            ]
            for user_id in user_ids:
                PortfolioHelper.update_investor_portfolio_summary(user_id)

        logger.info(f"Rebuilt {len(user_ids)} investor portfolio summaries")
        return len(user_ids)

    @staticmethod
    def calculate_project_roi(user_id: int, project_id: int) -> Dict[str, float]:
        invested = db.session.query(
            db.func.sum(ProjectInvestment.amount_eur)
        ).filter(
            ProjectInvestment.user_id == user_id,
            ProjectInvestment.project_id == project_id,
            ProjectInvestment.status == InvestmentStatus.ACTIVE.value
        ).scalar()
        invested = to_decimal(invested)

        if invested <= 0:
            return {"invested": 0.0, "currentValue": 0.0, "roi": 0.0}

        earned = to_decimal(db.session.query(
            db.func.sum(InvestorRevenuePayout.amount_eur)
        ).filter(
            InvestorRevenuePayout.user_id == user_id,
            InvestorRevenuePayout.project_id == project_id
        ).scalar())

        return {
            "invested": float(invested),
            "currentValue": float(invested + earned),
            "roi": float(MarketplaceConfig.percent(earned / invested * Decimal('100'))),
        }

    @staticmethod
    def get_investor_portfolio(user_id: int) -> List[Dict[str, Any]]:
        """Per-project breakdown of one investor's active stakes and revenue."""
        investments = db.session.query(
            ProjectInvestment.project_id,
            Project.name,
            Project.status,
            db.func.sum(ProjectInvestment.amount_coins),
            db.func.sum(ProjectInvestment.amount_eur),
            db.func.avg(ProjectInvestment.coin_price_at_investment)
        ).join(
            Project, ProjectInvestment.project_id == Project.id
        ).filter(
            ProjectInvestment.user_id == user_id,
            ProjectInvestment.status == InvestmentStatus.ACTIVE.value
        ).group_by(
            ProjectInvestment.project_id, Project.name, Project.status
        ).all()

        revenue_rows = db.session.query(
            InvestorRevenuePayout.project_id,
            db.func.sum(InvestorRevenuePayout.amount_eur),
            db.func.avg(InvestorRevenuePayout.roi_percentage)
        ).filter(
            InvestorRevenuePayout.user_id == user_id
        ).group_by(InvestorRevenuePayout.project_id).all()
        revenue = {project_id: (to_decimal(total), to_decimal(avg_roi)) for project_id, total, avg_roi in revenue_rows}

        portfolio = []
        for project_id, name, status, coins, eur, avg_price in investments:
            eur_invested = to_decimal(eur)
            earned, avg_roi = revenue.get(project_id, (Decimal('0'), Decimal('0')))
            portfolio.append({
                "projectId": project_id,
                "projectName": name,
                "projectStatus": status,
                "coinsInvested": float(to_decimal(coins)),
                "eurInvested": float(eur_invested),
                "avgPrice": float(MarketplaceConfig.coin_value(to_decimal(avg_price))),
                "revenue": float(earned),
                "roi": float(MarketplaceConfig.percent(avg_roi)),
                "currentValue": float(eur_invested + earned),
            })
        return portfolio

    @staticmethod
    def get_holding_valuation(user_id: int) -> Dict[str, Any]:
        holding = Holding.query.filter_by(user_id=user_id).first()
        if not holding:
            raise NotFoundError("No holdings found")

        current_value = CoinValuationHelper.get_current_coin_value()
        coins_owned = to_decimal(holding.coins_owned)
        total_invested = to_decimal(holding.total_invested)
        current_worth = MarketplaceConfig.money(coins_owned * current_value)
        unrealized_gain = current_worth - total_invested
        gain_percentage = (unrealized_gain / total_invested * Decimal('100')) if total_invested > 0 else Decimal('0')

        result = holding.to_dict()
        result.update({
            "current_coin_value": float(current_value),
            "current_worth": float(current_worth),
            "unrealized_gain": float(unrealized_gain),
            "gain_percentage": float(MarketplaceConfig.percent(gain_percentage)),
        })
        return result
