#======================================================================================
#
#   COIN TRADING AND PLATFORM STATS
#
#=======================================================================================
from flask import Blueprint, jsonify, request, current_app
from ledger.coins import CoinTradingHelper
from ledger.stats import MarketplaceStatsHelper
from blueprints.common import json_errors, get_json_body, require_int

bp = Blueprint("coins", __name__, url_prefix="/api")


@bp.route("/coins/buy", methods=["POST"])
@json_errors
def buy_coins():
    """
    Expected JSON: {"userId": 1, "coins": 10, "paymentMethod": "bank_transfer"}
    """
    data = get_json_body()
    user_id = require_int(data, "userId", "user_id")
    result = CoinTradingHelper.buy_coins(user_id, data.get("coins"), data.get("paymentMethod"))

    current_app.logger.info(f"Coin purchase completed for user {user_id}: {result['total_amount']}")
    return jsonify({"success": True, **result}), 201


@bp.route("/coins/sell", methods=["POST"])
@json_errors
def sell_coins():
    """Create a pending buyback request. Expected JSON: {"userId": 1, "coins": 5}"""
    data = get_json_body()
    user_id = require_int(data, "userId", "user_id")
    buyback = CoinTradingHelper.request_buyback(user_id, data.get("coins"))
    return jsonify({"success": True, "buyback": buyback}), 201


@bp.route("/transactions/<int:user_id>", methods=["GET"])
@json_errors
def get_transactions(user_id):
    limit = request.args.get("limit", 100, type=int)
    limit = max(1, min(limit, 500))
    return jsonify({"transactions": CoinTradingHelper.get_transactions(user_id, limit)}), 200


@bp.route("/stats", methods=["GET"])
@json_errors
def platform_stats():
    return jsonify(MarketplaceStatsHelper.get_platform_stats()), 200


@bp.route("/stats/history", methods=["GET"])
@json_errors
def coin_value_history():
    limit = request.args.get("limit", 100, type=int)
    return jsonify({"history": MarketplaceStatsHelper.get_coin_value_history(max(1, min(limit, 1000)))}), 200


@bp.route("/stats/coin-value", methods=["GET"])
@json_errors
def coin_value():
    return jsonify(MarketplaceStatsHelper.get_coin_value_summary()), 200
