"""
IPD API Routes

Ledger, daily bed charges, admissions, finalization and the ward/bed registry.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ValidationError as PydanticValidationError
from typing import Optional, Union
import json

from app.infrastructure.database import get_db
from app.core.exceptions import ValidationError
from app.core.permissions import require_roles, RoleGroups
from app.domain.billing.service import LedgerService, BedChargeService, FinalizationService
from app.domain.ipd.service import WardService, BedService, AdmissionService
from app.api.v1.ipd.schemas import (
    # Ledger schemas
    LedgerTransactionCreate, LedgerResponse, LedgerSummaryResponse,
    TransactionResponse, TransactionEnvelope,
    BedChargeRequest, BedChargeResult, BedChargeResponse,
    # Admission schemas
    AdmissionCreate, AdmissionStatusUpdate, AdmissionResponse,
    AdmissionEnvelope, AdmissionListResponse, DischargeResponse,
    # Finalization schemas
    FinalizeRequest, BillEnvelope, BillResponse,
    # Ward & bed schemas
    WardCreate, WardResponse, WardEnvelope, WardListResponse, WardStatistics,
    BedTypeCreate, BedTypeResponse, BedTypeEnvelope, BedTypeListResponse,
    BedCreate, BedStatusUpdate, BedResponse, BedEnvelope, BedListResponse
)

router = APIRouter()


# ==================== Ledger Endpoints ====================

@router.get("/ledger", response_model=LedgerResponse)
def get_ledger(
    admission_id: Optional[str] = Query(None, alias="admissionId"),
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.LEDGER_READ))
):
    """Admission ledger with running summary"""
    ledger = LedgerService(db).get_ledger(admission_id)
    return LedgerResponse(
        admission=AdmissionResponse.model_validate(ledger["admission"]),
        transactions=[TransactionResponse.model_validate(t) for t in ledger["transactions"]],
        summary=LedgerSummaryResponse.model_validate(ledger["summary"].as_dict()),
    )


@router.post("/ledger", response_model=TransactionEnvelope, status_code=status.HTTP_201_CREATED)
def post_ledger_transaction(
    transaction_data: LedgerTransactionCreate,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.LEDGER_POST))
):
    """Post a charge, deposit, payment, refund or adjustment"""
    transaction = LedgerService(db).post_transaction(
        admission_id=transaction_data.admission_id,
        type=transaction_data.type,
        amount=transaction_data.amount,
        processed_by=current_user["sub"],
        patient_id=transaction_data.patient_id,
        description=transaction_data.description,
        reference=transaction_data.reference,
        payment_method=transaction_data.payment_method
    )
    return {"transaction": transaction}


async def bed_charge_request(request: Request) -> BedChargeRequest:
    """Optional body; anything that is not a JSON object means all admissions"""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    try:
        return BedChargeRequest.model_validate(payload)
    except PydanticValidationError:
        raise ValidationError("admissionId must be a string", details={"field": "admissionId"})


@router.post("/ledger/bed-charge", response_model=BedChargeResponse)
def run_bed_charges(
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.BED_CHARGE_RUN)),
    charge_request: BedChargeRequest = Depends(bed_charge_request)
):
    """Post today's bed charge for one admission, or every active admission"""
    results = BedChargeService(db).post_daily_charges(
        processed_by=current_user["sub"],
        admission_id=charge_request.admission_id
    )
    return BedChargeResponse(results=[BedChargeResult.model_validate(r) for r in results])


# ==================== Admission Endpoints ====================

@router.get("/admissions", response_model=Union[AdmissionEnvelope, AdmissionListResponse])
def get_admissions(
    admission_id: Optional[str] = Query(None, alias="id"),
    patient_id: Optional[str] = Query(None, alias="patientId"),
    admission_status: Optional[str] = Query(None, alias="status"),
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.ADMISSIONS_READ))
):
    """One admission by id, or the 50 most recent matching the filters"""
    service = AdmissionService(db)
    if admission_id:
        return AdmissionEnvelope(admission=service.get_admission(admission_id))
    
    admissions = service.list_admissions(patient_id=patient_id, status=admission_status)
    return AdmissionListResponse(admissions=admissions)


@router.post("/admissions", response_model=AdmissionEnvelope)
def admit_patient(
    admission_data: AdmissionCreate,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.ADMISSIONS_CREATE))
):
    """Admit a patient to an available bed"""
    admission = AdmissionService(db).admit(
        patient_id=admission_data.patient_id,
        bed_id=admission_data.bed_id,
        doctor_id=admission_data.doctor_id,
        diagnosis=admission_data.diagnosis,
        chief_complaint=admission_data.chief_complaint,
        estimated_stay=admission_data.estimated_stay
    )
    return {"admission": admission}


@router.put("/admissions", response_model=Union[DischargeResponse, AdmissionEnvelope])
def update_admission_status(
    update_data: AdmissionStatusUpdate,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.ADMISSIONS_UPDATE))
):
    """Change admission status; discharging frees the bed"""
    admission = AdmissionService(db).update_status(
        admission_id=update_data.id,
        status=update_data.status,
        discharge_notes=update_data.discharge_notes
    )
    if update_data.status and update_data.status.upper() == "DISCHARGED":
        return DischargeResponse(message="Discharged", admission=admission)
    return AdmissionEnvelope(admission=admission)


# ==================== Finalization Endpoints ====================

@router.post("/finalize", response_model=BillEnvelope)
def finalize_admission(
    finalize_data: FinalizeRequest,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.FINALIZE))
):
    """Close the admission ledger into a final bill"""
    bill = FinalizationService(db).finalize(
        admission_id=finalize_data.admission_id,
        created_by=current_user["sub"]
    )
    return BillEnvelope(bill=BillResponse.model_validate(bill))


# ==================== Ward & Bed Endpoints ====================

@router.get("/wards", response_model=WardListResponse)
def list_wards(
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.WARDS_READ))
):
    """Active wards with bed statistics"""
    data = WardService(db).list_wards_with_statistics()
    
    wards = []
    for entry in data["wards"]:
        ward = WardResponse.model_validate(entry["ward"])
        ward.bed_types = [BedTypeResponse.model_validate(bt) for bt in entry["bed_types"]]
        ward.statistics = WardStatistics.model_validate(entry["statistics"])
        wards.append(ward)
    
    return WardListResponse(
        wards=wards,
        overall_stats=WardStatistics.model_validate(data["overall_stats"])
    )


@router.post("/wards", response_model=WardEnvelope, status_code=status.HTTP_201_CREATED)
def create_ward(
    ward_data: WardCreate,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.WARDS_MANAGE))
):
    ward = WardService(db).create_ward(
        name=ward_data.name,
        description=ward_data.description,
        floor=ward_data.floor,
        department=ward_data.department,
        capacity=ward_data.capacity
    )
    return {"ward": ward}


@router.get("/bed-types", response_model=BedTypeListResponse)
def list_bed_types(
    ward_id: Optional[str] = Query(None, alias="wardId"),
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.WARDS_READ))
):
    return {"bed_types": WardService(db).list_bed_types(ward_id)}


@router.post("/bed-types", response_model=BedTypeEnvelope, status_code=status.HTTP_201_CREATED)
def create_bed_type(
    bed_type_data: BedTypeCreate,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.WARDS_MANAGE))
):
    bed_type = WardService(db).create_bed_type(
        ward_id=bed_type_data.ward_id,
        name=bed_type_data.name,
        daily_rate=bed_type_data.daily_rate,
        description=bed_type_data.description,
        max_occupancy=bed_type_data.max_occupancy,
        amenities=bed_type_data.amenities
    )
    return {"bed_type": bed_type}


@router.get("/beds", response_model=BedListResponse)
def list_beds(
    ward_id: Optional[str] = Query(None, alias="wardId"),
    bed_status: Optional[str] = Query(None, alias="status"),
    bed_type: Optional[str] = Query(None, alias="bedType"),
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.WARDS_READ))
):
    """Active beds with ward, bed type and current admission"""
    beds = BedService(db).list_beds(ward_id=ward_id, status=bed_status, bed_type_name=bed_type)
    return BedListResponse(beds=[BedResponse.from_bed(bed) for bed in beds])


@router.post("/beds", response_model=BedEnvelope, status_code=status.HTTP_201_CREATED)
def create_bed(
    bed_data: BedCreate,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.WARDS_MANAGE))
):
    bed = BedService(db).create_bed(
        ward_id=bed_data.ward_id,
        bed_type_id=bed_data.bed_type_id,
        bed_number=bed_data.bed_number,
        notes=bed_data.notes
    )
    return BedEnvelope(message="Bed created successfully", bed=BedResponse.from_bed(bed))


@router.put("/beds", response_model=BedEnvelope)
def update_bed_status(
    update_data: BedStatusUpdate,
    db = Depends(get_db),
    current_user = Depends(require_roles(RoleGroups.BEDS_UPDATE))
):
    """Manual bed status change (maintenance, blocking, release)"""
    bed = BedService(db).update_status(
        bed_id=update_data.bed_id,
        status=update_data.status,
        notes=update_data.notes
    )
    return BedEnvelope(message="Bed status updated successfully", bed=BedResponse.from_bed(bed))
