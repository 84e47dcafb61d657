import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.database.database import Base, get_db
from app.database.models.users import Company, User
from app.database.models.approval import ApprovalFlowStep
from app.database.models.expense import Expense

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _user(db, company, name, role, manager=None):
    user = User(
        company_id=company.id,
        name=name,
        email=f"{name.lower().replace(' ', '.')}@acme.test",
        password_hash="not-a-real-hash",
        role=role,
        manager_id=manager.id if manager else None,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def org(db):
    """Acme (USD) with an employee reporting to a manager, plus finance and director approvers"""
    company = Company(name="Acme Corporation", country="United States", currency_code="USD")
    db.add(company)
    db.flush()

    manager = _user(db, company, "Bob Manager", "manager")
    employee = _user(db, company, "Charlie Employee", "employee", manager=manager)
    loner = _user(db, company, "Diana Worker", "employee")
    finance = _user(db, company, "Eve Finance", "manager")
    director = _user(db, company, "Frank Director", "admin")
    db.commit()

    return SimpleNamespace(
        company=company,
        manager=manager,
        employee=employee,
        loner=loner,
        finance=finance,
        director=director,
    )


@pytest.fixture
def default_flow(db, org):
    """manager -> finance -> director"""
    steps = [
        ApprovalFlowStep(company_id=org.company.id, step_number=1, approver_role="manager"),
        ApprovalFlowStep(company_id=org.company.id, step_number=2, approver_role="finance",
                         static_approver_id=org.finance.id),
        ApprovalFlowStep(company_id=org.company.id, step_number=3, approver_role="director",
                         static_approver_id=org.director.id),
    ]
    db.add_all(steps)
    db.commit()
    return steps


@pytest.fixture
def make_expense(db, org):
    def _make(amount="250.00", submitter=None, company_currency_amount=None):
        submitter = submitter or org.employee
        expense = Expense(
            submitted_by=submitter.id,
            company_id=org.company.id,
            amount=Decimal(amount),
            currency_code="USD",
            company_currency_amount=Decimal(company_currency_amount or amount),
            category="Travel",
            description="Client visit",
            expense_date=date(2024, 1, 10),
            status="pending",
        )
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return expense

    return _make
