"""
Billing Domain Models

The admission ledger (append-only BillingTransaction rows) and the closing
Bill/BillItem snapshot written at finalization.
"""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Text, Numeric, Enum
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
import uuid

from app.infrastructure.database import Base


def gen_uuid():
    return str(uuid.uuid4())


class TransactionType(str, enum.Enum):
    """Ledger entry categories folded into the admission summary"""
    CHARGE = "CHARGE"
    DEPOSIT = "DEPOSIT"
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    ADJUSTMENT = "ADJUSTMENT"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    COMPLETED = "COMPLETED"


class BillingTransaction(Base):
    __tablename__ = "billing_transactions"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    admission_id = Column(String(36), ForeignKey("admissions.id"), nullable=False, index=True)
    bill_id = Column(String(36), ForeignKey("bills.id"), nullable=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False)

    # Free-form on purpose: unknown types are stored but left out of the summary
    type = Column(String(32), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text)
    reference = Column(String(255), index=True)
    # Unique when set; bed-day rows use it as their one-per-day guard
    posting_key = Column(String(255), unique=True, nullable=True)

    payment_method = Column(String(50))
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    processed_by = Column(String(36), nullable=False)
    processed_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    admission = relationship("Admission", back_populates="transactions")


class Bill(Base):
    __tablename__ = "bills"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    bill_number = Column(String(50), unique=True, nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    admission_id = Column(String(36), ForeignKey("admissions.id"), nullable=True, index=True)

    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    cgst = Column(Numeric(12, 2), nullable=False, default=0)
    sgst = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_amount = Column(Numeric(12, 2), nullable=False, default=0)

    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    balance_amount = Column(Numeric(12, 2), nullable=False, default=0)

    notes = Column(Text)
    created_by = Column(String(36), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship(
        "BillItem",
        back_populates="bill",
        order_by="BillItem.position",
        cascade="all, delete-orphan",
    )


class BillItem(Base):
    __tablename__ = "bill_items"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    bill_id = Column(String(36), ForeignKey("bills.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    item_type = Column(String(30), nullable=False, default="OTHER")
    item_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    gst_rate = Column(Numeric(5, 2), nullable=False, default=0)

    bill = relationship("Bill", back_populates="items")
