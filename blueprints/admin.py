#======================================================================================
#
# THIS IS ADMIN api
#
#=======================================================================================
from datetime import date
from flask import jsonify, request, Blueprint, current_app
from models import BuybackRequest, ServiceRedemption
from ledger.coins import CoinTradingHelper
from ledger.distribution import DistributionHelper
from ledger.exceptions import ValidationError
from ledger.portfolio import PortfolioHelper
from ledger.projects import ProjectHelper
from ledger.redemption import ServiceRedemptionHelper
from ledger.stats import MarketplaceStatsHelper
from ledger.valuation import CoinValuationHelper
from blueprints.common import admin_required, json_errors, get_json_body

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _admin_notes():
    data = get_json_body()
    return data.get("adminNotes", data.get("notes"))


@admin_bp.route("/dashboard", methods=["GET"])
@admin_required
@json_errors
def dashboard():
    return jsonify(MarketplaceStatsHelper.get_admin_dashboard()), 200


@admin_bp.route("/analytics", methods=["GET"])
@admin_required
@json_errors
def analytics():
    return jsonify(MarketplaceStatsHelper.get_marketplace_analytics()), 200


@admin_bp.route("/investors", methods=["GET"])
@admin_required
@json_errors
def investors():
    return jsonify({"investors": MarketplaceStatsHelper.list_investors()}), 200


# ----------------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------------
@admin_bp.route("/projects", methods=["POST"])
@admin_required
@json_errors
def create_project():
    project = ProjectHelper.create_project(get_json_body())
    return jsonify({"success": True, "project": project}), 201


@admin_bp.route("/projects/<int:project_id>", methods=["PUT", "PATCH"])
@admin_required
@json_errors
def update_project(project_id):
    project = ProjectHelper.update_project(project_id, get_json_body())
    return jsonify({"success": True, "project": project}), 200


@admin_bp.route("/projects/<int:project_id>/complete", methods=["POST"])
@admin_required
@json_errors
def complete_project(project_id):
    """
    Expected JSON: {"actualRevenue": 5000}
    """
    data = get_json_body()
    actual_revenue = data.get("actualRevenue", data.get("actual_revenue"))
    if actual_revenue is None:
        raise ValidationError("actualRevenue is required")

    result = DistributionHelper.complete_project(project_id, actual_revenue)
    current_app.logger.info(f"Admin completed project {project_id}: new coin value {result['new_coin_value']}")
    return jsonify({"success": True, "distribution": result}), 200


@admin_bp.route("/projects/<int:project_id>/revenue", methods=["POST"])
@admin_required
@json_errors
def add_project_revenue(project_id):
    """
    Expected JSON: {"amount": 1000, "revenueDate": "2024-05-01"}
    """
    data = get_json_body()
    amount = data.get("amount")
    if amount is None:
        raise ValidationError("amount is required")

    revenue_date = None
    raw_date = data.get("revenueDate", data.get("revenue_date"))
    if raw_date:
        try:
            revenue_date = date.fromisoformat(str(raw_date)[:10])
        except ValueError:
            raise ValidationError("Invalid revenueDate")

    result = DistributionHelper.distribute_project_revenue(project_id, amount, revenue_date)
    return jsonify({"success": True, "revenue": result}), 201


# ----------------------------------------------------------------------------
# Buybacks
# ----------------------------------------------------------------------------
@admin_bp.route("/buybacks", methods=["GET"])
@admin_required
@json_errors
def list_buybacks():
    query = BuybackRequest.query
    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)
    rows = query.order_by(BuybackRequest.created_at.desc()).all()

    buybacks = []
    for row in rows:
        data = row.to_dict()
        data["user_email"] = row.user.email if row.user else None
        buybacks.append(data)
    return jsonify({"buybacks": buybacks}), 200


@admin_bp.route("/buybacks/<int:request_id>/<action>", methods=["POST"])
@admin_required
@json_errors
def process_buyback(request_id, action):
    """
    action: approve | reject
    Expected JSON: {"adminNotes": ""}
    """
    buyback = CoinTradingHelper.process_buyback(request_id, action, _admin_notes())
    return jsonify({"success": True, "buyback": buyback}), 200


# ----------------------------------------------------------------------------
# Service redemptions
# ----------------------------------------------------------------------------
@admin_bp.route("/redemptions", methods=["GET"])
@admin_required
@json_errors
def list_redemptions():
    query = ServiceRedemption.query
    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)
    rows = query.order_by(ServiceRedemption.requested_at.desc()).all()
    return jsonify({"redemptions": [row.to_dict() for row in rows]}), 200


@admin_bp.route("/redemptions/<int:redemption_id>/<action>", methods=["POST"])
@admin_required
@json_errors
def process_redemption(redemption_id, action):
    """
    action: approve | complete | reject
    Expected JSON: {"adminNotes": ""}
    """
    redemption = ServiceRedemptionHelper.process_redemption(redemption_id, action, _admin_notes())
    return jsonify({"success": True, "redemption": redemption}), 200


# ----------------------------------------------------------------------------
# Maintenance
# ----------------------------------------------------------------------------
@admin_bp.route("/coin-value/revalue", methods=["POST"])
@admin_required
@json_errors
def revalue_coin():
    return jsonify({"success": True, **CoinValuationHelper.revalue_to_dynamic()}), 200


@admin_bp.route("/portfolios/rebuild", methods=["POST"])
@admin_required
@json_errors
def rebuild_portfolios():
    rebuilt = PortfolioHelper.rebuild_all_portfolios()
    return jsonify({"success": True, "rebuilt": rebuilt}), 200
