import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ipd-ledger")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from typing import Generator, Dict, Any
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.main import app
from app.infrastructure.database import get_db, Base
from app.core.security import create_access_token
from app.domain.auth.models import User, UserRole
from app.domain.patients.models import Patient, Gender
from app.domain.ipd.models import Ward, BedType, Bed, BedStatus


# Single shared in-memory connection so every session sees the same tables
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = sessionmaker(
    bind=test_engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override."""
    
    def override_get_db():
        yield db_session
    
    app.dependency_overrides[get_db] = override_get_db
    
    with TestClient(app) as test_client:
        yield test_client
    
    app.dependency_overrides.clear()


def _add(db: Session, obj):
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture(scope="function")
def doctor(db_session: Session) -> User:
    return _add(db_session, User(
        name="Dr. Meera Iyer",
        email="meera.iyer@example.com",
        role=UserRole.DOCTOR,
        is_active=True
    ))


@pytest.fixture(scope="function")
def admin_user(db_session: Session) -> User:
    return _add(db_session, User(
        name="Admin User",
        email="admin@example.com",
        role=UserRole.ADMIN,
        is_active=True
    ))


@pytest.fixture(scope="function")
def patient(db_session: Session) -> Patient:
    return _add(db_session, Patient(
        patient_number="P000001",
        first_name="Ravi",
        last_name="Kumar",
        phone="+919800000001",
        gender=Gender.MALE
    ))


@pytest.fixture(scope="function")
def ward(db_session: Session) -> Ward:
    return _add(db_session, Ward(
        name="General Ward A",
        floor="1",
        department="Medicine",
        capacity=10,
        is_active=True
    ))


@pytest.fixture(scope="function")
def bed_type(db_session: Session, ward: Ward) -> BedType:
    return _add(db_session, BedType(
        ward_id=ward.id,
        name="General",
        daily_rate=Decimal("1000.00"),
        max_occupancy=1,
        amenities=["Oxygen"],
        is_active=True
    ))


@pytest.fixture(scope="function")
def bed(db_session: Session, ward: Ward, bed_type: BedType) -> Bed:
    return _add(db_session, Bed(
        ward_id=ward.id,
        bed_type_id=bed_type.id,
        bed_number="A-101",
        status=BedStatus.AVAILABLE,
        is_active=True
    ))


@pytest.fixture(scope="function")
def free_bed_type(db_session: Session, ward: Ward) -> BedType:
    """Bed type with no daily rate"""
    return _add(db_session, BedType(
        ward_id=ward.id,
        name="Observation",
        daily_rate=Decimal("0"),
        is_active=True
    ))


def make_token(user_id: str, role: str) -> str:
    return create_access_token(subject=user_id, data={"role": role})


def auth_headers(user_id: str, role: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> Dict[str, str]:
    return auth_headers(admin_user.id, "ADMIN")


@pytest.fixture(scope="function")
def doctor_headers(doctor: User) -> Dict[str, str]:
    return auth_headers(doctor.id, "DOCTOR")


@pytest.fixture(scope="function")
def nurse_headers() -> Dict[str, str]:
    return auth_headers("nurse-1", "NURSE")


@pytest.fixture(scope="function")
def receptionist_headers() -> Dict[str, str]:
    return auth_headers("reception-1", "RECEPTIONIST")


@pytest.fixture(scope="function")
def admission(client: TestClient, doctor_headers, patient, bed, doctor) -> Dict[str, Any]:
    """An ACTIVE admission created through the API"""
    response = client.post(
        "/api/v1/ipd/admissions",
        json={
            "patientId": patient.id,
            "bedId": bed.id,
            "doctorId": doctor.id,
            "diagnosis": "Pneumonia",
            "chiefComplaint": "Fever and cough",
            "estimatedStay": 3
        },
        headers=doctor_headers
    )
    assert response.status_code == 200
    return response.json()["admission"]


@pytest.fixture(scope="function")
def headers_for():
    """Build Authorization headers for an arbitrary user id and role"""
    return auth_headers
