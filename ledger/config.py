# ledger/config.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, ROUND_DOWN
from typing import Dict, Any, Tuple
from ledger.exceptions import ValidationError


class MarketplaceConfig:
    """
    Business constants for the coin marketplace.
    Pool/operator split 80/20, referral commissions 10% / 3% / 2%.
    """

    BASE_COIN_VALUE = Decimal('10.0')
    COIN_VALUE_SETTING_KEY = 'current_coin_value'

    # Profit and revenue split
    POOL_SHARE = Decimal('0.80')
    ADMIN_SHARE = Decimal('0.20')

    # Commission percentages by referral level
    COMMISSION_RATES = {
        1: Decimal('0.10'),   # 10%
        2: Decimal('0.03'),   # 3%
        3: Decimal('0.02'),   # 2%
    }
    MAX_LEVEL = 3
    COMMISSION_PAYOUT_TYPE = 'reinvest'

    # Direct referrals needed per rank
    RANK_THRESHOLDS = {
        'partner': 6,
        'director': 16,
        'executive': 31,
    }
    RANK_ORDER = ['associate', 'partner', 'director', 'executive']

    DEFAULT_PAYMENT_METHOD = 'bank_transfer'

    MONEY_QUANTUM = Decimal('0.01')
    COIN_VALUE_QUANTUM = Decimal('0.000001')
    COIN_QUANTUM = Decimal('0.0001')
    PERCENT_QUANTUM = Decimal('0.0001')

    @staticmethod
    def quantize(amount, quantum: Decimal, rounding: str) -> Decimal:
        """Round to `quantum`; NaN, Infinity and values too large for the context are rejected."""
        try:
            return Decimal(amount).quantize(quantum, rounding=rounding)
        except InvalidOperation:
            raise ValidationError("Invalid amount")

    @staticmethod
    def money(amount: Decimal) -> Decimal:
        return MarketplaceConfig.quantize(amount, MarketplaceConfig.MONEY_QUANTUM, ROUND_HALF_UP)

    @staticmethod
    def money_floor(amount: Decimal) -> Decimal:
        return MarketplaceConfig.quantize(amount, MarketplaceConfig.MONEY_QUANTUM, ROUND_DOWN)

    @staticmethod
    def coin_value(amount: Decimal) -> Decimal:
        return MarketplaceConfig.quantize(amount, MarketplaceConfig.COIN_VALUE_QUANTUM, ROUND_HALF_UP)

    @staticmethod
    def coins(amount: Decimal) -> Decimal:
        return MarketplaceConfig.quantize(amount, MarketplaceConfig.COIN_QUANTUM, ROUND_DOWN)

    @staticmethod
    def percent(amount: Decimal) -> Decimal:
        return MarketplaceConfig.quantize(amount, MarketplaceConfig.PERCENT_QUANTUM, ROUND_HALF_UP)

    @staticmethod
    def get_commission_rate(level: int) -> Decimal:
        """Rate for a referral level; levels outside 1-3 earn nothing."""
        return MarketplaceConfig.COMMISSION_RATES.get(level, Decimal('0'))

    @staticmethod
    def rank_index(rank: str) -> int:
        try:
            return MarketplaceConfig.RANK_ORDER.index(rank)
        except ValueError:
            return 0

    @staticmethod
    def get_commission_summary() -> Dict[str, Any]:
        """Summary of commission distribution across all levels"""
        distribution = {}
        total_percentage = Decimal('0')

        for level in range(1, MarketplaceConfig.MAX_LEVEL + 1):
            percentage = MarketplaceConfig.get_commission_rate(level)
            distribution[level] = {
                'percentage': float(percentage),
                'percentage_display': f"{float(percentage) * 100:g}%"
            }
            total_percentage += percentage

        return {
            'distribution': distribution,
            'total_percentage': float(total_percentage),
            'max_level': MarketplaceConfig.MAX_LEVEL,
        }

    @staticmethod
    def validate_configuration() -> Tuple[bool, str]:
        """Validate that split and commission configuration is mathematically sound"""
        if MarketplaceConfig.POOL_SHARE + MarketplaceConfig.ADMIN_SHARE != Decimal('1'):
            return False, "Pool and admin shares must sum to 1"

        for level, rate in MarketplaceConfig.COMMISSION_RATES.items():
            if not Decimal('0') < rate < Decimal('1'):
                return False, f"Commission rate for level {level} out of range: {rate}"

        thresholds = [MarketplaceConfig.RANK_THRESHOLDS[r] for r in MarketplaceConfig.RANK_ORDER[1:]]
        if thresholds != sorted(thresholds):
            return False, "Rank thresholds must increase with rank"

        total = sum(MarketplaceConfig.COMMISSION_RATES.values())
        return True, f"Configuration valid: {total * 100:.1f}% commissions across {MarketplaceConfig.MAX_LEVEL} levels"
