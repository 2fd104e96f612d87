#======================================================================================
#
#   PROJECTS MARKETPLACE AND SERVICE TIERS
#
#=======================================================================================
from flask import Blueprint, jsonify, request
from ledger.coins import CoinTradingHelper
from ledger.projects import ProjectHelper
from ledger.redemption import ServiceRedemptionHelper
from blueprints.common import json_errors, get_json_body, require_int

bp = Blueprint("projects", __name__, url_prefix="/api")


@bp.route("/projects", methods=["GET"])
@json_errors
def list_projects():
    return jsonify({"projects": ProjectHelper.list_projects(request.args.get("status"))}), 200


@bp.route("/projects/<int:project_id>", methods=["GET"])
@json_errors
def project_detail(project_id):
    return jsonify(ProjectHelper.get_project_detail(project_id)), 200


@bp.route("/projects/<int:project_id>/invest", methods=["POST"])
@json_errors
def invest(project_id):
    """
    Expected JSON: {"userId": 1, "coins": 10}
    """
    data = get_json_body()
    user_id = require_int(data, "userId", "user_id")
    coins = data.get("coins", data.get("dmcAmount"))
    result = CoinTradingHelper.invest_in_project(user_id, project_id, coins)
    return jsonify({"success": True, **result}), 201


@bp.route("/project-categories", methods=["GET"])
@json_errors
def categories():
    return jsonify({"categories": ProjectHelper.list_categories()}), 200


@bp.route("/services", methods=["GET"])
@json_errors
def services():
    return jsonify({"tiers": ServiceRedemptionHelper.get_active_tiers()}), 200


@bp.route("/services/redeem", methods=["POST"])
@json_errors
def redeem_service():
    """
    Expected JSON: {"userId": 1, "tierId": 1, "projectTitle": "", "projectDescription": ""}
    """
    data = get_json_body()
    user_id = require_int(data, "userId", "user_id")
    tier_id = require_int(data, "tierId", "tier_id")
    redemption = ServiceRedemptionHelper.redeem_service(
        user_id, tier_id, data.get("projectTitle"), data.get("projectDescription")
    )
    return jsonify({"success": True, "redemption": redemption}), 201
