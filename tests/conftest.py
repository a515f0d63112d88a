# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from src.database import get_db
from src.main import app
from src.models import Company, User
from src.models.base import Base
from src.rbac.roles import COMPANY_ADMIN_ROLE, SUPER_ADMIN_ROLE
from src.security import get_password_hash
from src.services import rbac_service
from src.services.rbac_seed_service import seed_rbac_data

# Test database setup
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_session):
    """Seed the permission catalog and default roles."""
    seed_rbac_data(db_session)
    return db_session


@pytest.fixture
def company(db_session) -> Company:
    """Create a test company."""
    company = Company(name="Studio Nord")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture
def other_company(db_session) -> Company:
    """Create a second, unrelated company."""
    company = Company(name="Atelier Sud")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture
def make_user(db_session, seeded):
    """Factory creating an active user holding a seeded role."""

    def _make_user(
        email: str,
        password: str = "testpassword123",
        role_name: str | None = None,
        company: Company | None = None,
        custom_permissions: list[str] | None = None,
    ) -> User:
        role = rbac_service.get_role_by_name(db_session, role_name) if role_name else None
        user = User(
            email=email,
            name=email.split("@")[0].title(),
            hashed_password=get_password_hash(password),
            is_active=True,
            company_id=company.id if company else None,
            role_id=role.id if role else None,
            custom_permissions=custom_permissions or [],
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user, company) -> User:
    """Create a read-only test user."""
    return make_user("test@example.com", role_name="Viewer", company=company)


@pytest.fixture
def admin_user(make_user, company) -> User:
    """Create a company administrator."""
    return make_user(
        "admin@example.com",
        password="adminpassword123",
        role_name=COMPANY_ADMIN_ROLE,
        company=company,
    )


@pytest.fixture
def super_admin_user(make_user) -> User:
    """Create a cross-company super administrator."""
    return make_user(
        "root@example.com", password="rootpassword123", role_name=SUPER_ADMIN_ROLE
    )


@pytest.fixture
def authenticated_client(client, test_user):
    """Create an authenticated test client."""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "test@example.com", "password": "testpassword123"},
    )
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_client(client, admin_user):
    """Create an authenticated company admin test client."""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "admin@example.com", "password": "adminpassword123"},
    )
    assert response.status_code == 200
    return client


@pytest.fixture
def super_admin_client(client, super_admin_user):
    """Create an authenticated super admin test client."""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "root@example.com", "password": "rootpassword123"},
    )
    assert response.status_code == 200
    return client
