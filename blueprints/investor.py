#======================================================================================
#
#   INVESTOR VIEWS: portfolio, buybacks, redemptions, commissions, network
#
#=======================================================================================
from flask import Blueprint, jsonify
from models import BuybackRequest, InvestorPortfolio
from extensions import db
from ledger.commission import CommissionCalculationHelper
from ledger.portfolio import PortfolioHelper
from ledger.redemption import ServiceRedemptionHelper
from ledger.referral_tree import ReferralTreeHelper
from blueprints.common import json_errors

bp = Blueprint("investor", __name__, url_prefix="/api/investor")


@bp.route("/<int:user_id>/portfolio", methods=["GET"])
@json_errors
def portfolio(user_id):
    """Holding plus current worth and unrealised gain"""
    return jsonify(PortfolioHelper.get_holding_valuation(user_id)), 200


@bp.route("/<int:user_id>/portfolio/projects", methods=["GET"])
@json_errors
def portfolio_projects(user_id):
    summary = db.session.get(InvestorPortfolio, user_id)
    return jsonify({
        "projects": PortfolioHelper.get_investor_portfolio(user_id),
        "summary": summary.to_dict() if summary else None,
    }), 200


@bp.route("/<int:user_id>/projects/<int:project_id>/roi", methods=["GET"])
@json_errors
def project_roi(user_id, project_id):
    return jsonify(PortfolioHelper.calculate_project_roi(user_id, project_id)), 200


@bp.route("/<int:user_id>/buybacks", methods=["GET"])
@json_errors
def buybacks(user_id):
    rows = BuybackRequest.query.filter_by(user_id=user_id).order_by(BuybackRequest.created_at.desc()).all()
    return jsonify({"buybacks": [row.to_dict() for row in rows]}), 200


@bp.route("/<int:user_id>/redemptions", methods=["GET"])
@json_errors
def redemptions(user_id):
    return jsonify({"redemptions": ServiceRedemptionHelper.get_user_redemptions(user_id)}), 200


@bp.route("/<int:user_id>/commissions", methods=["GET"])
@json_errors
def commissions(user_id):
    return jsonify(CommissionCalculationHelper.get_user_commissions(user_id)), 200


@bp.route("/<int:user_id>/network", methods=["GET"])
@json_errors
def network(user_id):
    return jsonify(ReferralTreeHelper.get_network_summary(user_id)), 200
