# ledger/distribution.py
"""
Distribution engine.

Two flows move money out of a project:

* ``complete_project`` turns project profit into a per-coin increase of the
  global coin value (80% pool / 20% operator).
* ``distribute_project_revenue`` pays a revenue event out to the project's
  active investors pro rata to their stake (80% investors / 20% operator).

Each flow is computed first (``plan_*``, pure) and persisted in one unit of work.
"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, Any, List, Tuple, Optional
from extensions import db
from models import (
    Project, ProjectInvestment, ProjectRevenue, InvestorRevenuePayout, Distribution,
    ProjectStatus, InvestmentStatus,
)
from ledger.config import MarketplaceConfig
from ledger.exceptions import DistributionError, NotFoundError, ValidationError
from ledger.portfolio import PortfolioHelper
from ledger.unit_of_work import atomic
from ledger.valuation import CoinValuationHelper, CoinValueState
from utils import to_decimal

logger = logging.getLogger(__name__)


class DistributionHelper:

    @staticmethod
    def split_amount(amount: Decimal) -> Tuple[Decimal, Decimal]:
        """(pool_share, admin_share); the two always add up to ``amount``."""
        amount = MarketplaceConfig.money(amount)
        pool_share = MarketplaceConfig.money(amount * MarketplaceConfig.POOL_SHARE)
        return pool_share, amount - pool_share

    # ------------------------------------------------------------
    # Project completion
    # ------------------------------------------------------------
    @staticmethod
    def plan_profit_distribution(profit: Decimal, coins_outstanding: Decimal,
                                 state: CoinValueState) -> Dict[str, Any]:
        profit = MarketplaceConfig.money(profit)
        if profit <= 0:
            raise DistributionError("No profit to distribute")

        coins_outstanding = to_decimal(coins_outstanding)
        if coins_outstanding <= 0:
            raise DistributionError("No coins outstanding to distribute profit to")

        to_pool, to_admin = DistributionHelper.split_amount(profit)
        per_coin = MarketplaceConfig.coin_value(to_pool / coins_outstanding)

        return {
            "profit": profit,
            "to_pool": to_pool,
            "to_admin": to_admin,
            "coins_outstanding": coins_outstanding,
            "value_increase_per_coin": per_coin,
            "old_coin_value": state.value,
            "new_coin_value": MarketplaceConfig.coin_value(state.value + per_coin),
        }

    @staticmethod
    def complete_project(project_id: int, actual_revenue) -> Dict[str, Any]:
        """
        Mark a project completed and raise the coin value by its pool share.
        Nothing is written when the profit is not positive or no coins exist.
        """
        with atomic():
            project = db.session.get(Project, project_id)
            if not project:
                raise NotFoundError("Project not found")
            if project.status == ProjectStatus.COMPLETED.value:
                raise ValidationError("Project already completed")

            actual_revenue = MarketplaceConfig.money(to_decimal(actual_revenue))
            profit = actual_revenue - MarketplaceConfig.money(to_decimal(project.cost))

            state = CoinValuationHelper.get_coin_value_state()
            coins_outstanding = CoinValuationHelper.get_total_coins_outstanding()
            try:
                plan = DistributionHelper.plan_profit_distribution(profit, coins_outstanding, state)
            except DistributionError as e:
                logger.warning(f"Completion of project {project_id} rejected: {e.message}")
                raise

            project.actual_revenue = actual_revenue
            project.profit = plan["profit"]
            project.status = ProjectStatus.COMPLETED.value
            project.actual_completion = datetime.now(timezone.utc)

            distribution = Distribution(
                project_id=project.id,
                total_profit=plan["profit"],
                to_coin_pool=plan["to_pool"],
                to_admin=plan["to_admin"],
                coins_outstanding=plan["coins_outstanding"],
                value_increase_per_coin=plan["value_increase_per_coin"],
            )
            db.session.add(distribution)
            db.session.flush()

            new_state = CoinValuationHelper.persist_coin_value(state, plan["new_coin_value"])
            CoinValuationHelper.record_history(
                new_state.value, coins_outstanding, 'project_distribution', project.id
            )

            # completed-project counts change for every investor in it
            investor_ids = [
                row[0] for row in db.session.query(ProjectInvestment.user_id)
                .filter(ProjectInvestment.project_id == project.id).distinct().all()
            ]
            for user_id in investor_ids:
                PortfolioHelper.update_investor_portfolio_summary(user_id)

        logger.info(
            f"Project {project_id} completed: profit={plan['profit']} pool={plan['to_pool']} "
            f"admin={plan['to_admin']} coin value {state.value} -> {new_state.value}"
        )
        return {
            "distribution_id": distribution.id,
            "profit": float(plan["profit"]),
            "to_pool": float(plan["to_pool"]),
            "to_admin": float(plan["to_admin"]),
            "coins_outstanding": float(plan["coins_outstanding"]),
            "value_increase_per_coin": float(plan["value_increase_per_coin"]),
            "old_coin_value": float(state.value),
            "new_coin_value": float(new_state.value),
        }

    # ------------------------------------------------------------
    # Per-project revenue
    # ------------------------------------------------------------
    @staticmethod
    def get_project_stakes(project_id: int) -> List[Tuple[int, Decimal]]:
        """Active stake in euros per investor, largest first."""
        rows = db.session.query(
            ProjectInvestment.user_id,
            db.func.sum(ProjectInvestment.amount_eur)
        ).filter(
            ProjectInvestment.project_id == project_id,
            ProjectInvestment.status == InvestmentStatus.ACTIVE.value
        ).group_by(ProjectInvestment.user_id).all()

        stakes = [(user_id, to_decimal(stake)) for user_id, stake in rows if to_decimal(stake) > 0]
        stakes.sort(key=lambda s: (-s[1], s[0]))
        return stakes

    @staticmethod
    def plan_revenue_distribution(amount: Decimal, stakes: List[Tuple[int, Decimal]]) -> Dict[str, Any]:
        """
        Split a revenue event between investors and the operator.

        Shares are floored to the cent and the leftover cents go to the
        largest fractional remainders, so payouts sum to the investor share.
        """
        amount = MarketplaceConfig.money(to_decimal(amount))
        if amount <= 0:
            raise ValidationError("Revenue amount must be positive")
        if not stakes:
            raise DistributionError("No investors found for this project")

        investor_share, admin_share = DistributionHelper.split_amount(amount)
        total_stake = sum(stake for _, stake in stakes)

        payouts = []
        for user_id, stake in stakes:
            exact = investor_share * stake / total_stake
            floored = MarketplaceConfig.money_floor(exact)
            payouts.append({"user_id": user_id, "stake": stake, "share": floored, "remainder": exact - floored})

        leftover_cents = int((investor_share - sum(p["share"] for p in payouts)) / MarketplaceConfig.MONEY_QUANTUM)
        for payout in sorted(payouts, key=lambda p: (-p["remainder"], -p["stake"], p["user_id"]))[:leftover_cents]:
            payout["share"] += MarketplaceConfig.MONEY_QUANTUM

        for payout in payouts:
            payout["roi_percentage"] = MarketplaceConfig.percent(payout["share"] / payout["stake"] * Decimal('100'))
            del payout["remainder"]

        return {
            "amount": amount,
            "investor_share": investor_share,
            "admin_share": admin_share,
            "total_stake": total_stake,
            "payouts": payouts,
        }

    @staticmethod
    def distribute_project_revenue(project_id: int, amount, revenue_date: Optional[date] = None) -> Dict[str, Any]:
        with atomic():
            project = db.session.get(Project, project_id)
            if not project:
                raise NotFoundError("Project not found")

            stakes = DistributionHelper.get_project_stakes(project_id)
            try:
                plan = DistributionHelper.plan_revenue_distribution(amount, stakes)
            except DistributionError as e:
                logger.warning(f"Revenue distribution for project {project_id} rejected: {e.message}")
                raise

            revenue = ProjectRevenue(
                project_id=project_id,
                revenue_date=revenue_date or date.today(),
                amount=plan["amount"],
                distributed_to_investors=plan["investor_share"],
                distributed_to_admin=plan["admin_share"],
                distribution_completed=True,
            )
            db.session.add(revenue)
            db.session.flush()

            for payout in plan["payouts"]:
                db.session.add(InvestorRevenuePayout(
                    user_id=payout["user_id"],
                    project_id=project_id,
                    project_revenue_id=revenue.id,
                    amount_eur=payout["share"],
                    payout_method="cash",
                    roi_percentage=payout["roi_percentage"],
                ))

            for payout in plan["payouts"]:
                PortfolioHelper.update_investor_portfolio_summary(payout["user_id"])

        logger.info(
            f"Revenue {plan['amount']} distributed for project {project_id}: "
            f"investors={plan['investor_share']} admin={plan['admin_share']} payouts={len(plan['payouts'])}"
        )
        return {
            "revenue_id": revenue.id,
            "amount": float(plan["amount"]),
            "investor_share": float(plan["investor_share"]),
            "admin_share": float(plan["admin_share"]),
            "payouts": [
                {
                    "user_id": p["user_id"],
                    "amount_eur": float(p["share"]),
                    "roi_percentage": float(p["roi_percentage"]),
                }
                for p in plan["payouts"]
            ],
        }
