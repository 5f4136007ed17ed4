"""
IPD Service Layer

Business logic for the ward/bed registry and the admission lifecycle.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    ValidationError, NotFoundError, ConflictError,
    BedUnavailableError, AdmissionClosedError, handle_database_error
)
from app.domain.auth.models import User
from app.domain.patients.models import Patient
from app.domain.ipd.models import (
    Ward, BedType, Bed, BedStatus, Admission, AdmissionStatus
)
from app.domain.ipd.repository import (
    WardRepository, BedRepository, AdmissionRepository
)

logger = logging.getLogger(__name__)


def _occupancy_rate(occupied: int, total: int) -> int:
    return round(occupied / total * 100) if total > 0 else 0


def _parse_enum(enum_cls, value: Optional[str], field: str):
    if not value:
        raise ValidationError(f"{field} is required", details={"field": field})
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        raise ValidationError(
            f"Invalid {field}",
            details={"field": field, "allowed": [m.value for m in enum_cls]}
        )


class WardService:
    """Service layer for wards and bed types"""
    
    def __init__(self, db):
        self.db = db
        self.ward_repo = WardRepository(db)
    
    def _commit(self, operation: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, operation) from e
    
    def list_wards_with_statistics(self) -> Dict[str, Any]:
        """Active wards with bed counts per status and hospital-wide totals"""
        wards = []
        overall = {
            "total_beds": 0,
            "occupied_beds": 0,
            "available_beds": 0,
            "maintenance_beds": 0,
            "blocked_beds": 0,
        }
        
        for ward in self.ward_repo.get_active_with_beds():
            beds = [bed for bed in ward.beds if bed.is_active]
            occupied = [
                bed for bed in beds
                if any(a.status == AdmissionStatus.ACTIVE for a in bed.admissions)
            ]
            stats = {
                "total_beds": len(beds),
                "occupied_beds": len(occupied),
                "available_beds": len([
                    bed for bed in beds
                    if bed.status == BedStatus.AVAILABLE and bed not in occupied
                ]),
                "maintenance_beds": len([b for b in beds if b.status == BedStatus.MAINTENANCE]),
                "blocked_beds": len([b for b in beds if b.status == BedStatus.BLOCKED]),
            }
            stats["occupancy_rate"] = _occupancy_rate(stats["occupied_beds"], stats["total_beds"])
            
            for key in overall:
                overall[key] += stats[key]
            
            wards.append({
                "ward": ward,
                "bed_types": [bt for bt in ward.bed_types if bt.is_active],
                "statistics": stats,
            })
        
        overall["occupancy_rate"] = _occupancy_rate(overall["occupied_beds"], overall["total_beds"])
        return {"wards": wards, "overall_stats": overall}
    
    def create_ward(
        self,
        name: Optional[str],
        description: Optional[str] = None,
        floor: Optional[str] = None,
        department: Optional[str] = None,
        capacity: Optional[int] = None
    ) -> Ward:
        if not name:
            raise ValidationError("Ward name is required", details={"field": "name"})
        if self.ward_repo.get_by_name(name):
            raise ConflictError("Ward with this name already exists")
        
        ward = self.ward_repo.create({
            "name": name,
            "description": description,
            "floor": floor,
            "department": department,
            "capacity": capacity or 0,
            "is_active": True,
        })
        self._commit("create ward")
        logger.info("Created ward %s (%s)", ward.name, ward.id)
        return ward
    
    def list_bed_types(self, ward_id: Optional[str] = None) -> List[BedType]:
        return self.ward_repo.list_bed_types(ward_id)
    
    def create_bed_type(
        self,
        ward_id: Optional[str],
        name: Optional[str],
        daily_rate: Optional[Decimal],
        description: Optional[str] = None,
        max_occupancy: Optional[int] = None,
        amenities: Optional[List[str]] = None
    ) -> BedType:
        if not ward_id or not name or daily_rate is None:
            raise ValidationError("Ward ID, name, and daily rate are required")
        if daily_rate < 0:
            raise ValidationError("Daily rate cannot be negative", details={"field": "dailyRate"})
        if not self.ward_repo.get_by_id(ward_id):
            raise NotFoundError("Ward not found")
        if self.ward_repo.get_bed_type_by_name(ward_id, name):
            raise ConflictError("Bed type with this name already exists in this ward")
        
        bed_type = self.ward_repo.create_bed_type({
            "ward_id": ward_id,
            "name": name,
            "description": description,
            "daily_rate": daily_rate,
            "max_occupancy": max_occupancy or 1,
            "amenities": list(amenities or []),
            "is_active": True,
        })
        self._commit("create bed type")
        return bed_type


class BedService:
    """Service layer for beds"""
    
    def __init__(self, db):
        self.db = db
        self.bed_repo = BedRepository(db)
        self.ward_repo = WardRepository(db)
        self.admission_repo = AdmissionRepository(db)
    
    def list_beds(
        self,
        ward_id: Optional[str] = None,
        status: Optional[str] = None,
        bed_type_name: Optional[str] = None
    ) -> List[Bed]:
        status_filter = _parse_enum(BedStatus, status, "status") if status else None
        return self.bed_repo.get_all(ward_id, status_filter, bed_type_name)
    
    def create_bed(
        self,
        ward_id: Optional[str],
        bed_type_id: Optional[str],
        bed_number: Optional[str],
        notes: Optional[str] = None
    ) -> Bed:
        if not ward_id or not bed_type_id or not bed_number:
            raise ValidationError("Ward ID, bed type ID and bed number are required")
        if not self.ward_repo.get_by_id(ward_id):
            raise NotFoundError("Ward not found")
        
        bed_type = self.ward_repo.get_bed_type(bed_type_id)
        if not bed_type or bed_type.ward_id != ward_id:
            raise NotFoundError("Bed type not found in this ward")
        if self.bed_repo.get_by_number(ward_id, bed_number):
            raise ConflictError("Bed number already exists in this ward")
        
        bed = self.bed_repo.create({
            "ward_id": ward_id,
            "bed_type_id": bed_type_id,
            "bed_number": bed_number,
            "status": BedStatus.AVAILABLE,
            "notes": notes,
            "is_active": True,
        })
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "create bed") from e
        return self.bed_repo.get_by_id(bed.id)
    
    def update_status(self, bed_id: Optional[str], status: Optional[str], notes: Optional[str] = None) -> Bed:
        """Manual status change (maintenance, blocking); replaces notes"""
        if not bed_id or not status:
            raise ValidationError("Bed ID and status are required")
        new_status = _parse_enum(BedStatus, status, "status")
        
        bed = self.bed_repo.get_for_update(bed_id)
        if not bed:
            raise NotFoundError("Bed not found")
        
        # An occupied bed is released by discharge only
        if new_status == BedStatus.AVAILABLE:
            occupant = self.admission_repo.get_active_for_bed(bed.id)
            if occupant:
                raise BedUnavailableError(
                    "Bed has an active admission; discharge it first",
                    details={"bed_id": bed.id, "admission_id": occupant.id}
                )
        
        self.bed_repo.update(bed, {"status": new_status, "notes": notes or None})
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "update bed status") from e
        
        logger.info("Bed %s set to %s", bed.id, new_status.value)
        return self.bed_repo.get_by_id(bed.id)


class AdmissionService:
    """Service layer for the admission lifecycle (ACTIVE -> DISCHARGED)"""
    
    def __init__(self, db):
        self.db = db
        self.admission_repo = AdmissionRepository(db)
        self.bed_repo = BedRepository(db)
    
    def get_admission(self, admission_id: Optional[str]) -> Admission:
        if not admission_id:
            raise ValidationError("Admission ID is required", details={"field": "id"})
        admission = self.admission_repo.get_with_details(admission_id)
        if not admission:
            raise NotFoundError("Admission not found")
        return admission
    
    def list_admissions(
        self,
        patient_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50
    ) -> List[Admission]:
        status_filter = _parse_enum(AdmissionStatus, status, "status") if status else None
        return self.admission_repo.get_all(patient_id, status_filter, limit)
    
    def admit(
        self,
        patient_id: Optional[str],
        bed_id: Optional[str],
        doctor_id: Optional[str],
        diagnosis: Optional[str] = None,
        chief_complaint: Optional[str] = None,
        estimated_stay: Optional[int] = None
    ) -> Admission:
        """
        Create an ACTIVE admission and mark its bed OCCUPIED.

        Both writes are committed together; a failure leaves neither.
        """
        if not patient_id or not bed_id or not doctor_id:
            raise ValidationError("patientId, bedId, doctorId required")
        
        bed = self.bed_repo.get_for_update(bed_id)
        if not bed:
            raise NotFoundError("Bed not found", details={"bed_id": bed_id})
        if self.db.get(Patient, patient_id) is None:
            raise NotFoundError("Patient not found", details={"patient_id": patient_id})
        if self.db.get(User, doctor_id) is None:
            raise NotFoundError("Doctor not found", details={"doctor_id": doctor_id})
        if bed.status != BedStatus.AVAILABLE or self.admission_repo.get_active_for_bed(bed_id):
            raise BedUnavailableError(
                details={"bed_id": bed_id, "status": bed.status.value}
            )
        
        try:
            admission = self.admission_repo.create({
                "patient_id": patient_id,
                "bed_id": bed_id,
                "admitted_by": doctor_id,
                "diagnosis": diagnosis or None,
                "chief_complaint": chief_complaint or None,
                "estimated_stay": estimated_stay,
                "status": AdmissionStatus.ACTIVE,
            })
            self.bed_repo.set_status(bed, BedStatus.OCCUPIED)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "create admission") from e
        
        logger.info("Admitted patient %s to bed %s (admission %s)", patient_id, bed_id, admission.id)
        return self.admission_repo.get_with_details(admission.id)
    
    def update_status(
        self,
        admission_id: Optional[str],
        status: Optional[str],
        discharge_notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Admission:
        """
        Move an admission to `status`.

        Discharge stamps the date and notes and frees the bed in the same
        commit. A discharged admission cannot change status again.
        """
        if not admission_id or not status:
            raise ValidationError("id and status required")
        new_status = _parse_enum(AdmissionStatus, status, "status")
        
        admission = self.admission_repo.get_by_id(admission_id)
        if not admission:
            raise NotFoundError("Admission not found")
        if admission.status == AdmissionStatus.DISCHARGED:
            raise AdmissionClosedError(details={"admission_id": admission.id})
        
        try:
            if new_status == AdmissionStatus.DISCHARGED:
                self.admission_repo.update(admission, {
                    "status": new_status,
                    "discharge_date": now or datetime.utcnow(),
                    "discharge_notes": discharge_notes or None,
                })
                bed = self.bed_repo.get_by_id(admission.bed_id)
                if bed:
                    self.bed_repo.set_status(bed, BedStatus.AVAILABLE)
            else:
                self.admission_repo.update(admission, {"status": new_status})
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "update admission status") from e
        
        logger.info("Admission %s set to %s", admission.id, new_status.value)
        return self.admission_repo.get_with_details(admission.id)
