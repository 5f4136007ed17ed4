from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.sql import func
import enum
import uuid

from app.infrastructure.database import Base


def gen_uuid():
    return str(uuid.uuid4())


class Gender(str, enum.Enum):
    """Gender enumeration"""
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class Patient(Base):
    """Registered patient, referenced by admissions and ledger rows"""
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    patient_number = Column(String(20), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(20))
    gender = Column(Enum(Gender))
    created_at = Column(DateTime, default=func.now())
