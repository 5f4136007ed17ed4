"""
IPD API Schemas

Pydantic models for ledger, admission, finalization and ward/bed requests
and responses. JSON keys are camelCase; snake_case is accepted on input.
"""

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any, Annotated
from datetime import datetime
from decimal import Decimal

from app.domain.auth.models import UserRole
from app.domain.patients.models import Gender
from app.domain.ipd.models import BedStatus, AdmissionStatus
from app.domain.billing.models import PaymentStatus


Money = Annotated[Decimal, PlainSerializer(float, return_type=float)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ==================== Shared read models ====================

class UserBrief(CamelModel):
    id: str
    name: str
    role: UserRole


class PatientBrief(CamelModel):
    id: str
    patient_number: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    gender: Optional[Gender] = None


class WardBrief(CamelModel):
    id: str
    name: str
    floor: Optional[str] = None
    department: Optional[str] = None


class BedTypeResponse(CamelModel):
    id: str
    ward_id: str
    name: str
    description: Optional[str] = None
    daily_rate: Money
    max_occupancy: Optional[int] = None
    amenities: List[Any] = []


class BedBrief(CamelModel):
    id: str
    bed_number: str
    status: BedStatus
    notes: Optional[str] = None
    ward: Optional[WardBrief] = None
    bed_type: Optional[BedTypeResponse] = None


# ==================== Admission Schemas ====================

class AdmissionCreate(CamelModel):
    """Schema for admitting a patient to a bed"""
    patient_id: Optional[str] = None
    bed_id: Optional[str] = None
    doctor_id: Optional[str] = None
    diagnosis: Optional[str] = None
    chief_complaint: Optional[str] = None
    estimated_stay: Optional[int] = Field(None, ge=0)


class AdmissionStatusUpdate(CamelModel):
    """Schema for discharging or otherwise changing admission status"""
    id: Optional[str] = None
    status: Optional[str] = None
    discharge_notes: Optional[str] = None


class AdmissionResponse(CamelModel):
    id: str
    patient_id: str
    bed_id: str
    admitted_by: str
    diagnosis: Optional[str] = None
    chief_complaint: Optional[str] = None
    estimated_stay: Optional[int] = None
    status: AdmissionStatus
    discharge_date: Optional[datetime] = None
    discharge_notes: Optional[str] = None
    created_at: datetime
    bed: Optional[BedBrief] = None
    patient: Optional[PatientBrief] = None
    admitted_by_user: Optional[UserBrief] = None


class AdmissionEnvelope(CamelModel):
    admission: AdmissionResponse


class AdmissionListResponse(CamelModel):
    admissions: List[AdmissionResponse]


class DischargeResponse(CamelModel):
    message: str
    admission: AdmissionResponse


# ==================== Ledger Schemas ====================

class LedgerTransactionCreate(CamelModel):
    """Schema for posting a ledger entry; amount is validated by the service"""
    admission_id: Optional[str] = None
    patient_id: Optional[str] = None
    type: Optional[str] = None
    amount: Any = None
    description: Optional[str] = None
    reference: Optional[str] = None
    payment_method: Optional[str] = None


class TransactionResponse(CamelModel):
    id: str
    admission_id: str
    bill_id: Optional[str] = None
    patient_id: str
    type: str
    amount: Money
    description: Optional[str] = None
    reference: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: str
    processed_by: str
    processed_at: datetime


class TransactionEnvelope(CamelModel):
    transaction: TransactionResponse


class LedgerSummaryResponse(CamelModel):
    total_charges: Money
    total_deposits: Money
    total_payments: Money
    total_refunds: Money
    total_adjustments: Money
    net_due: Money


class LedgerResponse(CamelModel):
    admission: AdmissionResponse
    transactions: List[TransactionResponse]
    summary: LedgerSummaryResponse


class BedChargeRequest(CamelModel):
    admission_id: Optional[str] = None


class BedChargeResult(CamelModel):
    admission_id: str
    posted: bool
    amount: Money


class BedChargeResponse(CamelModel):
    results: List[BedChargeResult]


# ==================== Finalization Schemas ====================

class FinalizeRequest(CamelModel):
    admission_id: Optional[str] = None


class BillItemResponse(CamelModel):
    id: str
    item_type: str
    item_name: str
    quantity: int
    unit_price: Money
    total_price: Money
    gst_rate: Money


class BillResponse(CamelModel):
    id: str
    bill_number: str
    patient_id: str
    doctor_id: Optional[str] = None
    admission_id: Optional[str] = None
    total_amount: Money
    cgst: Money
    sgst: Money
    discount_amount: Money
    final_amount: Money
    payment_status: PaymentStatus
    paid_amount: Money
    balance_amount: Money
    notes: Optional[str] = None
    created_by: str
    created_at: datetime
    items: List[BillItemResponse] = []


class BillEnvelope(CamelModel):
    bill: BillResponse


# ==================== Ward & Bed Schemas ====================

class WardCreate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    floor: Optional[str] = None
    department: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)


class WardStatistics(CamelModel):
    total_beds: int
    occupied_beds: int
    available_beds: int
    maintenance_beds: int
    blocked_beds: int
    occupancy_rate: int


class WardResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    floor: Optional[str] = None
    department: Optional[str] = None
    capacity: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    bed_types: List[BedTypeResponse] = []
    statistics: Optional[WardStatistics] = None


class WardEnvelope(CamelModel):
    ward: WardResponse


class WardListResponse(CamelModel):
    wards: List[WardResponse]
    overall_stats: WardStatistics


class BedTypeCreate(CamelModel):
    ward_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    daily_rate: Optional[Decimal] = None
    max_occupancy: Optional[int] = Field(None, ge=1)
    amenities: Optional[List[str]] = None


class BedTypeEnvelope(CamelModel):
    bed_type: BedTypeResponse


class BedTypeListResponse(CamelModel):
    bed_types: List[BedTypeResponse]


class BedCreate(CamelModel):
    ward_id: Optional[str] = None
    bed_type_id: Optional[str] = None
    bed_number: Optional[str] = None
    notes: Optional[str] = None


class BedStatusUpdate(CamelModel):
    bed_id: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class CurrentAdmission(CamelModel):
    id: str
    patient: Optional[PatientBrief] = None
    created_at: datetime


class BedResponse(BedBrief):
    current_admission: Optional[CurrentAdmission] = None
    is_occupied: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_bed(cls, bed) -> "BedResponse":
        active = sorted(
            (a for a in bed.admissions if a.status == AdmissionStatus.ACTIVE),
            key=lambda a: a.created_at,
            reverse=True,
        )
        response = cls.model_validate(bed)
        if active:
            response.current_admission = CurrentAdmission.model_validate(active[0])
            response.is_occupied = True
        return response


class BedEnvelope(CamelModel):
    message: Optional[str] = None
    bed: BedResponse


class BedListResponse(CamelModel):
    beds: List[BedResponse]
