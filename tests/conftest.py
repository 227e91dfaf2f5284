import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["RESEND_API_KEY"] = ""
os.environ["S3_ENDPOINT_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402,F401
from app.db import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.person import Company, User, UserRole  # noqa: E402
from app.models.project import Project, ProjectStatus  # noqa: E402
from app.services.access import Identity  # noqa: E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    yield session
    session.close()


def _make_user(db_session, email, full_name, company, role=UserRole.member):
    user = User(
        email=email,
        full_name=full_name,
        role=role,
        company_id=company.id if company else None,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def company(db_session):
    c = Company(name="Studio North")
    db_session.add(c)
    db_session.commit()
    db_session.refresh(c)
    return c


@pytest.fixture()
def other_company(db_session):
    c = Company(name="Harbor Engineering")
    db_session.add(c)
    db_session.commit()
    db_session.refresh(c)
    return c


@pytest.fixture()
def user(db_session, company):
    return _make_user(db_session, "alice@studionorth.test", "Alice Architect", company)


@pytest.fixture()
def teammate(db_session, company):
    return _make_user(db_session, "bob@studionorth.test", "Bob Builder", company)


@pytest.fixture()
def company_admin(db_session, company):
    return _make_user(
        db_session, "admin@studionorth.test", "Ada Admin", company, UserRole.admin
    )


@pytest.fixture()
def outsider(db_session, other_company):
    return _make_user(
        db_session,
        "carol@harbor.test",
        "Carol Consultant",
        other_company,
        UserRole.consultant,
    )


@pytest.fixture()
def identity_for():
    def _identity(u: User) -> Identity:
        return Identity(user_id=u.id, role=u.role, company_id=u.company_id)

    return _identity


@pytest.fixture()
def identity(user, identity_for):
    return identity_for(user)


@pytest.fixture()
def project(db_session, user, company):
    p = Project(
        name="Riverside Library",
        address="12 Quay Street",
        status=ProjectStatus.active,
        company_id=company.id,
        created_by=user.id,
    )
    db_session.add(p)
    db_session.commit()
    db_session.refresh(p)
    return p


@pytest.fixture()
def client(db_session):
    def _get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def headers_for():
    def _headers(u: User) -> dict:
        token = jwt.encode({"sub": str(u.id)}, "test-secret", algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def auth_headers(user, headers_for):
    return headers_for(user)
