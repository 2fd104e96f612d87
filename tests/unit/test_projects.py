"""Project administration: creation, whitelisted edits and status transitions."""

from decimal import Decimal

import pytest

from models import ProjectStatus
from ledger.exceptions import ValidationError, NotFoundError
from ledger.projects import ProjectHelper


class TestCreateProject:

    def test_created_as_planned(self, app):
        project = ProjectHelper.create_project({
            "name": "CRM integration",
            "cost": "1500",
            "target_capital_eur": 5000,
            "min_investment_eur": 50,
            "start_date": "2024-03-01",
            "status": "completed",
            "profit": 99999,
        })

        assert project["status"] == "planned"
        assert project["cost"] == 1500.0
        assert project["profit"] is None
        assert project["start_date"] == "2024-03-01"
        assert project["current_funding_eur"] == 0.0

    def test_name_required(self, app):
        with pytest.raises(ValidationError):
            ProjectHelper.create_project({"cost": 10})

    def test_min_above_max(self, app):
        with pytest.raises(ValidationError):
            ProjectHelper.create_project({"name": "X", "min_investment_eur": 500, "max_investment_eur": 50})

    def test_unknown_category(self, app):
        with pytest.raises(NotFoundError):
            ProjectHelper.create_project({"name": "X", "category_id": 12})


class TestUpdateProject:

    @pytest.mark.parametrize("path", [
        ["funding"],
        ["funding", "in_progress"],
        ["funding", "active"],
        ["funding", "active", "in_progress"],
    ])
    def test_allowed_transitions(self, make_project, path):
        project = make_project(status=ProjectStatus.PLANNED.value)
        for status in path:
            result = ProjectHelper.update_project(project.id, {"status": status})
        assert result["status"] == path[-1]

    @pytest.mark.parametrize("start,target", [
        ("planned", "active"),
        ("funding", "planned"),
        ("funding", "completed"),
        ("active", "completed"),
    ])
    def test_rejected_transitions(self, make_project, start, target):
        project = make_project(status=start)
        with pytest.raises(ValidationError):
            ProjectHelper.update_project(project.id, {"status": target})

    def test_financial_results_not_editable(self, make_project):
        project = make_project()
        result = ProjectHelper.update_project(project.id, {
            "actual_revenue": 5000, "profit": 4000, "current_funding_eur": 1, "description": "Updated",
        })
        assert result["actual_revenue"] is None
        assert result["profit"] is None
        assert result["current_funding_eur"] == 0.0
        assert result["description"] == "Updated"

    def test_completed_project_locked(self, make_project):
        project = make_project(status=ProjectStatus.COMPLETED.value, profit=Decimal("10"))
        with pytest.raises(ValidationError):
            ProjectHelper.update_project(project.id, {"name": "Renamed"})

    def test_invalid_money(self, make_project):
        with pytest.raises(ValidationError):
            ProjectHelper.update_project(make_project().id, {"cost": "-1"})

    def test_unknown_project(self, app):
        with pytest.raises(NotFoundError):
            ProjectHelper.update_project(5150, {"name": "X"})
