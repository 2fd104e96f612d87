# ledger/projects.py
import logging
from datetime import date
from typing import Dict, Any
from extensions import db
from models import (
    Project, ProjectCategory, ProjectInvestment, ProjectRevenue, ProjectStatus, InvestmentStatus, User,
)
from ledger.config import MarketplaceConfig
from ledger.exceptions import ValidationError, NotFoundError
from ledger.unit_of_work import atomic
from utils import to_decimal

logger = logging.getLogger(__name__)

# Fields an admin may edit; financial results are set by completion only
EDITABLE_FIELDS = {
    'name', 'description', 'client_name', 'category_id', 'is_featured',
    'target_capital_eur', 'min_investment_eur', 'max_investment_eur',
    'cost', 'expected_revenue', 'start_date', 'expected_completion', 'status',
}
MONEY_FIELDS = {'target_capital_eur', 'min_investment_eur', 'max_investment_eur', 'cost', 'expected_revenue'}
DATE_FIELDS = {'start_date', 'expected_completion'}

STATUS_TRANSITIONS = {
    ProjectStatus.PLANNED.value: {ProjectStatus.FUNDING.value},
    ProjectStatus.FUNDING.value: {ProjectStatus.IN_PROGRESS.value, ProjectStatus.ACTIVE.value},
    ProjectStatus.IN_PROGRESS.value: {ProjectStatus.ACTIVE.value},
    ProjectStatus.ACTIVE.value: {ProjectStatus.IN_PROGRESS.value},
    ProjectStatus.COMPLETED.value: set(),
}


def _parse_date(value, field):
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"Invalid date for {field}")


def _parse_money(value, field):
    if value in (None, ""):
        return None
    amount = to_decimal(value, None)
    if amount is None or amount < 0:
        raise ValidationError(f"Invalid amount for {field}")
    return MarketplaceConfig.money(amount)


class ProjectHelper:

    @staticmethod
    def _apply_fields(project: Project, data: Dict[str, Any]):
        for field, value in data.items():
            if field not in EDITABLE_FIELDS or field == 'status':
                continue
            if field in MONEY_FIELDS:
                value = _parse_money(value, field)
            elif field in DATE_FIELDS:
                value = _parse_date(value, field)
            elif field == 'is_featured':
                value = bool(value)
            elif field == 'category_id' and value is not None:
                if not db.session.get(ProjectCategory, value):
                    raise NotFoundError("Category not found")
            setattr(project, field, value)

        min_eur = project.min_investment_eur
        max_eur = project.max_investment_eur
        if min_eur is not None and max_eur is not None and to_decimal(min_eur) > to_decimal(max_eur):
            raise ValidationError("Minimum investment cannot exceed maximum investment")

    @staticmethod
    def create_project(data: Dict[str, Any]) -> Dict[str, Any]:
        if not (data.get('name') or '').strip():
            raise ValidationError("Project name is required")

        with atomic():
            project = Project(status=ProjectStatus.PLANNED.value, current_funding_eur=0, investor_count=0)
            ProjectHelper._apply_fields(project, data)
            if project.cost is None:
                project.cost = 0
            db.session.add(project)

        logger.info(f"Project {project.id} '{project.name}' created")
        return project.to_dict()

    @staticmethod
    def update_project(project_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        with atomic():
            project = db.session.get(Project, project_id)
            if not project:
                raise NotFoundError("Project not found")
            if project.status == ProjectStatus.COMPLETED.value:
                raise ValidationError("Completed projects cannot be edited")

            ProjectHelper._apply_fields(project, data)

            new_status = data.get('status')
            if new_status and new_status != project.status:
                if new_status not in STATUS_TRANSITIONS.get(project.status, set()):
                    raise ValidationError(f"Cannot move project from {project.status} to {new_status}")
                project.status = new_status

        logger.info(f"Project {project_id} updated: {sorted(k for k in data if k in EDITABLE_FIELDS)}")
        return project.to_dict()

    @staticmethod
    def list_projects(status=None):
        query = Project.query
        if status:
            query = query.filter_by(status=status)
        return [p.to_dict() for p in query.order_by(Project.is_featured.desc(), Project.created_at.desc()).all()]

    @staticmethod
    def get_project_detail(project_id: int) -> Dict[str, Any]:
        project = db.session.get(Project, project_id)
        if not project:
            raise NotFoundError("Project not found")

        investors = db.session.query(
            User.id, User.name,
            db.func.sum(ProjectInvestment.amount_coins),
            db.func.sum(ProjectInvestment.amount_eur)
        ).join(
            ProjectInvestment, ProjectInvestment.user_id == User.id
        ).filter(
            ProjectInvestment.project_id == project_id,
            ProjectInvestment.status == InvestmentStatus.ACTIVE.value
        ).group_by(User.id, User.name).all()

        revenue = ProjectRevenue.query.filter_by(project_id=project_id).order_by(ProjectRevenue.revenue_date.desc()).all()

        result = project.to_dict()
        result["investors"] = [
            {"user_id": uid, "name": name, "coins": float(to_decimal(coins)), "eur": float(to_decimal(eur))}
            for uid, name, coins, eur in investors
        ]
        result["revenue_history"] = [r.to_dict() for r in revenue]
        return result

    @staticmethod
    def list_categories():
        return [c.to_dict() for c in ProjectCategory.query.order_by(ProjectCategory.name).all()]
