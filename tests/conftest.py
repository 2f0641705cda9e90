import os
import tempfile
import uuid
from datetime import date

_tmp = tempfile.mkdtemp(prefix="appointments-test-")
os.environ["JWT_SECRET"] = "test-secret-for-appointments-0123456789abcdef"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_tmp, "uploads")
os.environ["SEED_DEMO_USERS"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.db import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.customer import Customer  # noqa: E402
from app.models.user import StaffRole, User  # noqa: E402
from app.schemas.appointment import AppointmentCreate  # noqa: E402
from app.services import appointments, evidence  # noqa: E402

# argon2 is slow on purpose; tests only need a well-formed hash
_DUMMY_HASH = "$argon2id$v=19$m=65536,t=3,p=4$c2FsdHNhbHQ$aGFzaGhhc2hoYXNoaGFzaA"


@pytest.fixture(autouse=True)
def fresh_schema(monkeypatch):
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr(evidence, "staging", evidence.StagingArea())
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _user(db, name, role):
    user = User(
        id=str(uuid.uuid4()),
        name=name,
        phone=f"+1555{uuid.uuid4().int % 10**7:07d}",
        role=role,
        password_hash=_DUMMY_HASH,
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def staff(db):
    """Admin, dispatcher and two workers, keyed by short name."""
    return {
        "admin": _user(db, "Admin", StaffRole.ADMIN),
        "dispatcher": _user(db, "Dispatcher", StaffRole.DISPATCHER),
        "alice": _user(db, "Alice", StaffRole.WORKER),
        "bob": _user(db, "Bob", StaffRole.WORKER),
    }


@pytest.fixture
def customer(db):
    c = Customer(id=str(uuid.uuid4()), name="Jane Customer", unit_number="12-04")
    db.add(c)
    db.commit()
    return c


@pytest.fixture
def make_appointment(db, staff, customer):
    def _make(*worker_keys, **overrides):
        payload = AppointmentCreate(
            customer_id=customer.id,
            title=overrides.pop("title", "Aircon servicing"),
            appointment_date=overrides.pop("appointment_date", date(2026, 11, 2)),
            start_time=overrides.pop("start_time", "09:00"),
            end_time=overrides.pop("end_time", "11:00"),
            worker_ids=[staff[k].id for k in worker_keys],
            **overrides,
        )
        return appointments.create_appointment(db, payload, staff["dispatcher"])

    return _make
