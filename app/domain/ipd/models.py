"""
IPD Domain Models

Implements the database models for:
- Wards and the bed types priced inside them
- Beds and their occupancy status
- Inpatient admissions
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey,
    Integer, Text, Numeric, Enum, JSON, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
import uuid

from app.infrastructure.database import Base


def gen_uuid():
    return str(uuid.uuid4())


class BedStatus(str, enum.Enum):
    """Bed occupancy status"""
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    BLOCKED = "BLOCKED"


class AdmissionStatus(str, enum.Enum):
    """Admission lifecycle; DISCHARGED is terminal"""
    ACTIVE = "ACTIVE"
    DISCHARGED = "DISCHARGED"


class Ward(Base):
    __tablename__ = "wards"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    floor = Column(String(20))
    department = Column(String(100))
    capacity = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    bed_types = relationship("BedType", back_populates="ward", order_by="BedType.name")
    beds = relationship("Bed", back_populates="ward", order_by="Bed.bed_number")


class BedType(Base):
    """Priced category of bed within a ward (general, ICU, private...)"""
    __tablename__ = "bed_types"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    ward_id = Column(String(36), ForeignKey("wards.id"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    daily_rate = Column(Numeric(12, 2), nullable=False, default=0)
    max_occupancy = Column(Integer, default=1)
    amenities = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())

    ward = relationship("Ward", back_populates="bed_types")

    __table_args__ = (
        UniqueConstraint("ward_id", "name", name="unique_bed_type_name_per_ward"),
    )


class Bed(Base):
    __tablename__ = "beds"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    ward_id = Column(String(36), ForeignKey("wards.id"), nullable=False)
    bed_type_id = Column(String(36), ForeignKey("bed_types.id"), nullable=False)
    bed_number = Column(String(20), nullable=False)
    status = Column(Enum(BedStatus), nullable=False, default=BedStatus.AVAILABLE)
    notes = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    ward = relationship("Ward", back_populates="beds")
    bed_type = relationship("BedType")
    admissions = relationship("Admission", back_populates="bed")

    __table_args__ = (
        UniqueConstraint("ward_id", "bed_number", name="unique_bed_number_per_ward"),
    )


class Admission(Base):
    """A patient's inpatient stay, from intake to discharge"""
    __tablename__ = "admissions"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    bed_id = Column(String(36), ForeignKey("beds.id"), nullable=False)
    admitted_by = Column(String(36), ForeignKey("users.id"), nullable=False)

    diagnosis = Column(Text)
    chief_complaint = Column(Text)
    estimated_stay = Column(Integer)  # days

    status = Column(Enum(AdmissionStatus), nullable=False, default=AdmissionStatus.ACTIVE, index=True)
    discharge_date = Column(DateTime)
    discharge_notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = relationship("Patient")
    bed = relationship("Bed", back_populates="admissions")
    admitted_by_user = relationship("User", foreign_keys=[admitted_by])
    transactions = relationship(
        "BillingTransaction",
        back_populates="admission",
        order_by="BillingTransaction.processed_at",
    )
