from flask import Blueprint, request, jsonify, current_app
import math
from models import CoinTransaction, ProjectInvestment, InvestorRevenuePayout, MlmCommission, BuybackRequest
from utils import safe_float_convert, safe_isoformat
from blueprints.common import json_errors

activity_bp = Blueprint('activity', __name__)

FEED_SOURCE_LIMIT = 100


def map_transaction_to_activity(transaction):
    """Map CoinTransaction model to activity format"""
    title_mapping = {
        'buy': 'Coin Purchase',
        'sell': 'Coin Buyback',
        'service_redemption': 'Service Redemption',
        'redemption_refund': 'Redemption Refund',
    }
    return {
        'type': transaction.transaction_type,
        'title': title_mapping.get(transaction.transaction_type, 'Transaction'),
        'timestamp': safe_isoformat(transaction.created_at),
        'amount': safe_float_convert(transaction.total_amount),
        'coins': safe_float_convert(transaction.coins),
        'currency': 'EUR',
        'source': 'transaction',
        'id': transaction.id
    }


def map_investment_to_activity(investment):
    project_name = investment.project.name if investment.project else 'Project'
    return {
        'type': 'investment',
        'title': f'Investment - {project_name}',
        'timestamp': safe_isoformat(investment.created_at),
        'amount': safe_float_convert(investment.amount_eur),
        'coins': safe_float_convert(investment.amount_coins),
        'currency': 'EUR',
        'source': 'investment',
        'id': investment.id
    }


def map_payout_to_activity(payout):
    return {
        'type': 'revenue',
        'title': 'Project Revenue Payout',
        'timestamp': safe_isoformat(payout.created_at),
        'amount': safe_float_convert(payout.amount_eur),
        'currency': 'EUR',
        'source': 'revenue_payout',
        'id': payout.id
    }


def map_commission_to_activity(commission):
    return {
        'type': 'commission',
        'title': f'Referral Commission (Level {commission.commission_level})',
        'timestamp': safe_isoformat(commission.created_at),
        'amount': safe_float_convert(commission.commission_amount),
        'currency': 'EUR',
        'source': 'commission',
        'id': commission.id
    }


def map_buyback_to_activity(buyback):
    return {
        'type': 'buyback_request',
        'title': f'Buyback Request ({buyback.status})',
        'timestamp': safe_isoformat(buyback.created_at),
        'amount': safe_float_convert(buyback.total_amount),
        'coins': safe_float_convert(buyback.coins_to_sell),
        'currency': 'EUR',
        'source': 'buyback',
        'id': buyback.id
    }


@activity_bp.route('/api/recent_activity/<int:user_id>', methods=['GET'])
@json_errors
def get_user_recent_activity(user_id):
    """
    Merged, newest-first activity feed for one investor
    """
    page = request.args.get('page', 1, type=int)
    page_size = request.args.get('page_size',
                                 current_app.config.get('DEFAULT_PAGE_SIZE', 20),
                                 type=int)

    if page < 1:
        return jsonify({'error': 'Page must be greater than 0'}), 400

    max_page_size = current_app.config.get('MAX_PAGE_SIZE', 100)
    if page_size < 1 or page_size > max_page_size:
        return jsonify({
            'error': f'Page size must be between 1 and {max_page_size}'
        }), 400

    sources = (
        (CoinTransaction.query.filter_by(user_id=user_id)
         .order_by(CoinTransaction.created_at.desc()), map_transaction_to_activity),
        (ProjectInvestment.query.filter_by(user_id=user_id)
         .order_by(ProjectInvestment.created_at.desc()), map_investment_to_activity),
        (InvestorRevenuePayout.query.filter_by(user_id=user_id)
         .order_by(InvestorRevenuePayout.created_at.desc()), map_payout_to_activity),
        (MlmCommission.query.filter_by(earning_user_id=user_id)
         .order_by(MlmCommission.created_at.desc()), map_commission_to_activity),
        (BuybackRequest.query.filter_by(user_id=user_id)
         .order_by(BuybackRequest.created_at.desc()), map_buyback_to_activity),
    )

    all_activities = []
    for query, mapper in sources:
        all_activities.extend(mapper(row) for row in query.limit(FEED_SOURCE_LIMIT).all())

    all_activities.sort(key=lambda x: x.get('timestamp') or '', reverse=True)

    offset = (page - 1) * page_size
    total_items = len(all_activities)
    paginated_activities = all_activities[offset:offset + page_size]
    total_pages = math.ceil(total_items / page_size)

    return jsonify({
        'activities': paginated_activities,
        'pagination': {
            'page': page,
            'page_size': page_size,
            'total_items': total_items,
            'total_pages': total_pages,
            'has_next': page < total_pages,
            'has_prev': page > 1
        }
    }), 200
