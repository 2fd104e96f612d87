"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
import tempfile
from pathlib import Path

# Environment must be in place before config.py and logger.py are imported
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")
os.environ.setdefault("FLASK_ENV", "testing")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "marketplace-test-logs"))

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from decimal import Decimal

import pytest

from app import create_app, init_db
from config import TestingConfig
from extensions import db
from models import (
    User, Holding, Project, ProjectInvestment, ServiceTier,
    UserRole, ProjectStatus, InvestmentStatus,
)
from ledger.referral_tree import ReferralTreeHelper


@pytest.fixture
def app():
    """Application with a fresh in-memory database per test."""
    app = create_app(TestingConfig)
    with app.app_context():
        init_db()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make_user(role=UserRole.VISITOR.value, **kwargs):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=kwargs.pop("email", f"user{n}@example.com"),
            name=kwargs.pop("name", f"User {n}"),
            role=role,
            referral_code=kwargs.pop("referral_code", f"code{n:04d}"),
            **kwargs
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_holding(app):
    def _make_holding(user, coins, avg_price=Decimal("10")):
        coins = Decimal(str(coins))
        avg_price = Decimal(str(avg_price))
        holding = Holding(
            user_id=user.id,
            coins_owned=coins,
            total_invested=(coins * avg_price).quantize(Decimal("0.01")),
            avg_purchase_price=avg_price,
        )
        db.session.add(holding)
        db.session.commit()
        return holding

    return _make_holding


@pytest.fixture
def make_project(app):
    def _make_project(**kwargs):
        defaults = {
            "name": "Website rebuild",
            "cost": Decimal("1000"),
            "status": ProjectStatus.FUNDING.value,
            "target_capital_eur": Decimal("10000"),
            "current_funding_eur": Decimal("0"),
            "investor_count": 0,
        }
        defaults.update(kwargs)
        project = Project(**defaults)
        db.session.add(project)
        db.session.commit()
        return project

    return _make_project


@pytest.fixture
def make_investment(app):
    """Direct stake rows, bypassing the holding, for distribution tests."""
    def _make_investment(user, project, amount_eur, coin_price=Decimal("10")):
        amount_eur = Decimal(str(amount_eur))
        investment = ProjectInvestment(
            user_id=user.id,
            project_id=project.id,
            amount_eur=amount_eur,
            amount_coins=(amount_eur / coin_price).quantize(Decimal("0.0001")),
            coin_price_at_investment=coin_price,
            status=InvestmentStatus.ACTIVE.value,
        )
        db.session.add(investment)
        db.session.commit()
        return investment

    return _make_investment


@pytest.fixture
def referral_chain(make_user):
    """
    great_grandparent -> grandparent -> parent -> buyer
    Returns the four users, top of the chain first.
    """
    great_grandparent = make_user(name="Great Grandparent")
    grandparent = make_user(name="Grandparent")
    parent = make_user(name="Parent")
    buyer = make_user(name="Buyer")

    ReferralTreeHelper.build_referral_tree(grandparent.id, great_grandparent.id)
    ReferralTreeHelper.build_referral_tree(parent.id, grandparent.id)
    ReferralTreeHelper.build_referral_tree(buyer.id, parent.id)
    db.session.commit()

    return great_grandparent, grandparent, parent, buyer


@pytest.fixture
def service_tier(app):
    return ServiceTier.query.filter_by(name="Starter").first()


@pytest.fixture
def admin_client(client, make_user):
    admin = make_user(role=UserRole.ADMIN.value, email="admin@example.com")
    with client.session_transaction() as sess:
        sess["user_id"] = admin.id
    return client
