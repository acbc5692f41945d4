# tests/conftest.py
import os

# must be set before anything under curex reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from curex.api.deps import get_db  # noqa: E402
from curex.api.routes_auth import issue_token  # noqa: E402
from curex.core.rbac import (  # noqa: E402
    ROLE_ADMIN,
    ROLE_GOVERNMENT,
    ROLE_INSURANCE,
    ROLE_PATIENT,
    ROLE_PHARMACIST,
)
from curex.core.security import get_password_hash  # noqa: E402
from curex.db.base import Base  # noqa: E402
from curex.db.init_db import seed_roles_and_permissions  # noqa: E402
from curex.db.session import SessionLocal, engine  # noqa: E402
from curex.main import app  # noqa: E402
from curex.models.medication import Medication  # noqa: E402
from curex.models.pharmacy import Pharmacy  # noqa: E402
from curex.models.role import Role  # noqa: E402
from curex.models.user import User  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_roles_and_permissions(session)
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def _override_get_db():
        try:
            yield db
        finally:
            # what get_db's close() would do to an unfinished transaction
            db.rollback()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def pharmacy(db):
    p = Pharmacy(name="Pharmacie du Centre",
                 address_city="Alger",
                 delivery_available=True,
                 is_active=True,
                 is_verified=True)
    db.add(p)
    db.commit()
    return p


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role: str = ROLE_PATIENT, pharmacy_id=None, **kw) -> User:
        counter["n"] += 1
        u = User(first_name=kw.pop("first_name", "Test"),
                 last_name=kw.pop("last_name", role.title()),
                 email=kw.pop("email", f"{role}{counter['n']}@curex.dz"),
                 password_hash=get_password_hash(PASSWORD),
                 is_active=kw.pop("is_active", True),
                 pharmacy_id=pharmacy_id,
                 **kw)
        u.roles.append(db.query(Role).filter(Role.name == role).one())
        db.add(u)
        db.commit()
        return u

    return _make


@pytest.fixture()
def auth_headers(db):
    def _headers(user: User) -> dict:
        data = issue_token(db, user)
        db.commit()
        return {"Authorization": f"Bearer {data['token']}"}

    return _headers


@pytest.fixture()
def patient(make_user):
    return make_user(ROLE_PATIENT)


@pytest.fixture()
def pharmacist(make_user, pharmacy):
    return make_user(ROLE_PHARMACIST, pharmacy_id=pharmacy.id)


@pytest.fixture()
def admin(make_user):
    return make_user(ROLE_ADMIN)


@pytest.fixture()
def official(make_user):
    return make_user(ROLE_GOVERNMENT)


@pytest.fixture()
def insurer(make_user):
    return make_user(ROLE_INSURANCE)


@pytest.fixture()
def patient_headers(patient, auth_headers):
    return auth_headers(patient)


@pytest.fixture()
def pharmacist_headers(pharmacist, auth_headers):
    return auth_headers(pharmacist)


@pytest.fixture()
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture()
def make_medication(db):
    counter = {"n": 0}

    def _make(stock: int = 50, price: str = "100.00", **kw) -> Medication:
        counter["n"] += 1
        m = Medication(name=kw.pop("name", f"Medication {counter['n']}"),
                       price=Decimal(price),
                       stock=stock,
                       min_stock=kw.pop("min_stock", 5),
                       is_active=kw.pop("is_active", True),
                       is_available=kw.pop("is_available", stock > 0),
                       **kw)
        db.add(m)
        db.commit()
        return m

    return _make
