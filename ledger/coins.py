# ledger/coins.py
"""
Coin trading: purchases, buyback requests and approvals, project investments.
Every public operation is one unit of work.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Optional
from extensions import db
from models import (
    User, Holding, CoinTransaction, BuybackRequest, Project, ProjectInvestment,
    UserRole, TransactionType, PaymentStatus, BuybackStatus, ProjectStatus, InvestmentStatus,
)
from ledger.commission import CommissionCalculationHelper
from ledger.config import MarketplaceConfig
from ledger.exceptions import ValidationError, InsufficientBalanceError, NotFoundError
from ledger.portfolio import PortfolioHelper
from ledger.unit_of_work import atomic
from ledger.valuation import CoinValuationHelper
from utils import to_decimal

logger = logging.getLogger(__name__)

INVESTABLE_STATUSES = (
    ProjectStatus.FUNDING.value,
    ProjectStatus.ACTIVE.value,
    ProjectStatus.IN_PROGRESS.value,
)


class CoinTradingHelper:

    @staticmethod
    def _parse_coins(coins) -> Decimal:
        amount = MarketplaceConfig.coins(to_decimal(coins))
        if amount <= 0:
            raise ValidationError("Coin amount must be positive")
        return amount

    @staticmethod
    def _get_user(user_id: int) -> User:
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def get_pending_buyback_coins(user_id: int) -> Decimal:
        total = db.session.query(db.func.sum(BuybackRequest.coins_to_sell)).filter(
            BuybackRequest.user_id == user_id,
            BuybackRequest.status == BuybackStatus.PENDING.value
        ).scalar()
        return to_decimal(total)

    @staticmethod
    def buy_coins(user_id: int, coins, payment_method: Optional[str] = None) -> Dict[str, Any]:
        """Buy coins at the current value; pays referral commissions up the tree."""
        coins = CoinTradingHelper._parse_coins(coins)
        payment_method = payment_method or MarketplaceConfig.DEFAULT_PAYMENT_METHOD

        with atomic():
            user = CoinTradingHelper._get_user(user_id)
            coin_value = CoinValuationHelper.get_current_coin_value()
            total_amount = MarketplaceConfig.money(coins * coin_value)

            transaction = CoinTransaction(
                user_id=user.id,
                transaction_type=TransactionType.BUY.value,
                coins=coins,
                price_per_coin=coin_value,
                total_amount=total_amount,
                payment_method=payment_method,
                payment_status=PaymentStatus.PENDING.value,
            )
            db.session.add(transaction)
            db.session.flush()

            # No payment gateway: the purchase settles immediately
            transaction.payment_status = PaymentStatus.COMPLETED.value
            transaction.completed_at = datetime.now(timezone.utc)

            holding = Holding.query.filter_by(user_id=user.id).first()
            if holding:
                new_coins = to_decimal(holding.coins_owned) + coins
                new_total = to_decimal(holding.total_invested) + total_amount
                holding.coins_owned = new_coins
                holding.total_invested = new_total
                holding.avg_purchase_price = MarketplaceConfig.coin_value(new_total / new_coins)
            else:
                holding = Holding(
                    user_id=user.id,
                    coins_owned=coins,
                    total_invested=total_amount,
                    avg_purchase_price=coin_value,
                )
                db.session.add(holding)
                if user.role == UserRole.VISITOR.value:
                    user.role = UserRole.INVESTOR.value

            commissions = CommissionCalculationHelper.calculate_mlm_commissions(
                user.id, transaction, coins, coin_value, total_amount
            )

        logger.info(f"User {user_id} bought {coins} coins at {coin_value} for {total_amount}")
        return {
            "transaction": transaction.to_dict(),
            "holding": holding.to_dict(),
            "total_amount": float(total_amount),
            "commissions": len(commissions),
        }

    @staticmethod
    def request_buyback(user_id: int, coins) -> Dict[str, Any]:
        """Pending buyback at the current value. The holding is not touched until approval."""
        coins = CoinTradingHelper._parse_coins(coins)

        with atomic():
            CoinTradingHelper._get_user(user_id)
            holding = Holding.query.filter_by(user_id=user_id).first()
            owned = to_decimal(holding.coins_owned) if holding else Decimal('0')
            available = owned - CoinTradingHelper.get_pending_buyback_coins(user_id)
            if coins > available:
                logger.warning(f"Buyback of {coins} coins rejected for user {user_id}: {available} available")
                raise InsufficientBalanceError("Insufficient coins")

            coin_value = CoinValuationHelper.get_current_coin_value()
            buyback = BuybackRequest(
                user_id=user_id,
                coins_to_sell=coins,
                requested_price=coin_value,
                total_amount=MarketplaceConfig.money(coins * coin_value),
                status=BuybackStatus.PENDING.value,
            )
            db.session.add(buyback)

        logger.info(f"Buyback request {buyback.id} created: user {user_id}, {coins} coins at {coin_value}")
        return buyback.to_dict()

    @staticmethod
    def process_buyback(request_id: int, action: str, admin_notes: Optional[str] = None) -> Dict[str, Any]:
        """Approve or reject a pending buyback. Approval settles at the locked price."""
        if action not in ('approve', 'reject'):
            raise ValidationError("Invalid action")

        with atomic():
            buyback = db.session.get(BuybackRequest, request_id)
            if not buyback:
                raise NotFoundError("Buyback request not found")
            if buyback.status != BuybackStatus.PENDING.value:
                raise ValidationError("Buyback request already processed")

            if action == 'approve':
                holding = Holding.query.filter_by(user_id=buyback.user_id).first()
                coins = to_decimal(buyback.coins_to_sell)
                owned = to_decimal(holding.coins_owned) if holding else Decimal('0')
                if coins > owned:
                    logger.warning(f"Buyback {request_id} cannot be approved: {owned} coins held")
                    raise InsufficientBalanceError("Insufficient coins")

                cost_basis = MarketplaceConfig.money(coins * to_decimal(holding.avg_purchase_price))
                holding.coins_owned = owned - coins
                holding.total_invested = max(Decimal('0'), to_decimal(holding.total_invested) - cost_basis)

                db.session.add(CoinTransaction(
                    user_id=buyback.user_id,
                    transaction_type=TransactionType.SELL.value,
                    coins=coins,
                    price_per_coin=buyback.requested_price,
                    total_amount=buyback.total_amount,
                    payment_method=MarketplaceConfig.DEFAULT_PAYMENT_METHOD,
                    payment_status=PaymentStatus.COMPLETED.value,
                    completed_at=datetime.now(timezone.utc),
                ))
                buyback.status = BuybackStatus.APPROVED.value
            else:
                buyback.status = BuybackStatus.REJECTED.value

            buyback.admin_notes = admin_notes
            buyback.processed_at = datetime.now(timezone.utc)

        logger.info(f"Buyback request {request_id} {buyback.status}")
        return buyback.to_dict()

    @staticmethod
    def invest_in_project(user_id: int, project_id: int, coins) -> Dict[str, Any]:
        """Move coins from the holding into a project stake priced at the current value."""
        coins = CoinTradingHelper._parse_coins(coins)

        with atomic():
            CoinTradingHelper._get_user(user_id)
            project = db.session.get(Project, project_id)
            if not project:
                raise NotFoundError("Project not found")
            if project.status not in INVESTABLE_STATUSES:
                raise ValidationError("Project is not open for investment")

            coin_value = CoinValuationHelper.get_current_coin_value()
            amount_eur = MarketplaceConfig.money(coins * coin_value)

            if project.min_investment_eur is not None and amount_eur < to_decimal(project.min_investment_eur):
                raise ValidationError(f"Minimum investment is €{project.min_investment_eur}")
            if project.max_investment_eur is not None and amount_eur > to_decimal(project.max_investment_eur):
                raise ValidationError(f"Maximum investment is €{project.max_investment_eur}")

            holding = Holding.query.filter_by(user_id=user_id).first()
            owned = to_decimal(holding.coins_owned) if holding else Decimal('0')
            available = owned - CoinTradingHelper.get_pending_buyback_coins(user_id)
            if coins > available:
                logger.warning(f"Investment of {coins} coins rejected for user {user_id}: {available} available")
                raise InsufficientBalanceError("Insufficient DMC balance")

            holding.coins_owned = owned - coins

            investment = ProjectInvestment(
                user_id=user_id,
                project_id=project_id,
                amount_coins=coins,
                amount_eur=amount_eur,
                coin_price_at_investment=coin_value,
                status=InvestmentStatus.ACTIVE.value,
            )
            db.session.add(investment)
            db.session.flush()

            project.current_funding_eur = to_decimal(project.current_funding_eur) + amount_eur
            project.investor_count = db.session.query(
                db.func.count(db.distinct(ProjectInvestment.user_id))
            ).filter(
                ProjectInvestment.project_id == project_id,
                ProjectInvestment.status == InvestmentStatus.ACTIVE.value
            ).scalar() or 0

            PortfolioHelper.update_investor_portfolio_summary(user_id)

        logger.info(f"User {user_id} invested {coins} coins (€{amount_eur}) in project {project_id}")
        return {
            "investment": investment.to_dict(),
            "project": project.to_dict(),
            "holding": holding.to_dict(),
        }

    @staticmethod
    def get_transactions(user_id: int, limit: int = 100):
        rows = CoinTransaction.query.filter_by(user_id=user_id).order_by(
            CoinTransaction.created_at.desc(), CoinTransaction.id.desc()
        ).limit(limit).all()
        return [row.to_dict() for row in rows]
