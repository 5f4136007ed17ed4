"""
IPD Repository Layer

Data access for wards, bed types, beds and admissions. Write helpers only
flush; the calling service owns the commit so that paired writes (admission
plus bed status) land in a single transaction.
"""

from typing import Optional, List
from sqlalchemy import and_
from sqlalchemy.orm import joinedload, selectinload

from app.domain.ipd.models import (
    Ward, BedType, Bed, BedStatus, Admission, AdmissionStatus
)


class WardRepository:
    """Repository for ward and bed type data access operations"""
    
    def __init__(self, db):
        self.db = db
    
    def create(self, ward_data: dict) -> Ward:
        """Stage a new ward"""
        ward = Ward(**ward_data)
        self.db.add(ward)
        self.db.flush()
        return ward
    
    def get_by_id(self, ward_id: str) -> Optional[Ward]:
        return self.db.query(Ward).filter(Ward.id == ward_id).first()
    
    def get_by_name(self, name: str) -> Optional[Ward]:
        return self.db.query(Ward).filter(Ward.name == name).first()
    
    def get_active_with_beds(self) -> List[Ward]:
        """Active wards with their bed types, beds and the beds' admissions loaded"""
        return self.db.query(Ward).options(
            selectinload(Ward.bed_types),
            selectinload(Ward.beds).selectinload(Bed.admissions).joinedload(Admission.patient)
        ).filter(Ward.is_active == True).order_by(Ward.name).all()
    
    def create_bed_type(self, bed_type_data: dict) -> BedType:
        bed_type = BedType(**bed_type_data)
        self.db.add(bed_type)
        self.db.flush()
        return bed_type
    
    def get_bed_type(self, bed_type_id: str) -> Optional[BedType]:
        return self.db.query(BedType).filter(BedType.id == bed_type_id).first()
    
    def get_bed_type_by_name(self, ward_id: str, name: str) -> Optional[BedType]:
        return self.db.query(BedType).filter(
            and_(BedType.ward_id == ward_id, BedType.name == name)
        ).first()
    
    def list_bed_types(self, ward_id: Optional[str] = None) -> List[BedType]:
        query = self.db.query(BedType).filter(BedType.is_active == True)
        if ward_id:
            query = query.filter(BedType.ward_id == ward_id)
        return query.order_by(BedType.name).all()


class BedRepository:
    """Repository for bed data access operations"""
    
    def __init__(self, db):
        self.db = db
    
    def create(self, bed_data: dict) -> Bed:
        bed = Bed(**bed_data)
        self.db.add(bed)
        self.db.flush()
        return bed
    
    def get_by_id(self, bed_id: str) -> Optional[Bed]:
        """Get bed by ID with its ward and bed type"""
        return self.db.query(Bed).options(
            joinedload(Bed.ward),
            joinedload(Bed.bed_type)
        ).filter(Bed.id == bed_id).first()
    
    def get_for_update(self, bed_id: str) -> Optional[Bed]:
        """Get bed by ID, locking the row until the transaction ends"""
        return self.db.query(Bed).filter(Bed.id == bed_id).with_for_update().first()
    
    def get_by_number(self, ward_id: str, bed_number: str) -> Optional[Bed]:
        return self.db.query(Bed).filter(
            and_(Bed.ward_id == ward_id, Bed.bed_number == bed_number)
        ).first()
    
    def get_all(
        self,
        ward_id: Optional[str] = None,
        status: Optional[BedStatus] = None,
        bed_type_name: Optional[str] = None
    ) -> List[Bed]:
        """Active beds ordered by ward name then bed number"""
        query = self.db.query(Bed).join(Bed.ward).join(Bed.bed_type).options(
            joinedload(Bed.ward),
            joinedload(Bed.bed_type),
            selectinload(Bed.admissions).joinedload(Admission.patient)
        ).filter(Bed.is_active == True)
        
        if ward_id:
            query = query.filter(Bed.ward_id == ward_id)
        if status:
            query = query.filter(Bed.status == status)
        if bed_type_name:
            query = query.filter(BedType.name == bed_type_name)
        
        return query.order_by(Ward.name, Bed.bed_number).all()
    
    def set_status(self, bed: Bed, status: BedStatus) -> Bed:
        """Stage a bed status change"""
        bed.status = status
        self.db.flush()
        return bed
    
    def update(self, bed: Bed, update_data: dict) -> Bed:
        for key, value in update_data.items():
            if hasattr(bed, key):
                setattr(bed, key, value)
        self.db.flush()
        return bed


class AdmissionRepository:
    """Repository for admission data access operations"""
    
    def __init__(self, db):
        self.db = db
    
    def create(self, admission_data: dict) -> Admission:
        admission = Admission(**admission_data)
        self.db.add(admission)
        self.db.flush()
        return admission
    
    def get_by_id(self, admission_id: str) -> Optional[Admission]:
        """Get admission by ID"""
        return self.db.query(Admission).filter(Admission.id == admission_id).first()
    
    def get_with_details(self, admission_id: str) -> Optional[Admission]:
        """Get admission with bed, ward, bed type, patient and admitting user joined"""
        return self.db.query(Admission).options(
            joinedload(Admission.bed).joinedload(Bed.ward),
            joinedload(Admission.bed).joinedload(Bed.bed_type),
            joinedload(Admission.patient),
            joinedload(Admission.admitted_by_user)
        ).filter(Admission.id == admission_id).first()
    
    def get_all(
        self,
        patient_id: Optional[str] = None,
        status: Optional[AdmissionStatus] = None,
        limit: int = 50
    ) -> List[Admission]:
        """Admissions newest first"""
        query = self.db.query(Admission).options(
            joinedload(Admission.bed).joinedload(Bed.ward),
            joinedload(Admission.bed).joinedload(Bed.bed_type),
            joinedload(Admission.patient),
            joinedload(Admission.admitted_by_user)
        )
        if patient_id:
            query = query.filter(Admission.patient_id == patient_id)
        if status:
            query = query.filter(Admission.status == status)
        return query.order_by(Admission.created_at.desc()).limit(limit).all()
    
    def get_active(self, admission_id: Optional[str] = None) -> List[Admission]:
        """ACTIVE admissions with bed and bed type, optionally narrowed to one id"""
        query = self.db.query(Admission).options(
            joinedload(Admission.bed).joinedload(Bed.bed_type)
        ).filter(Admission.status == AdmissionStatus.ACTIVE)
        if admission_id:
            query = query.filter(Admission.id == admission_id)
        return query.order_by(Admission.created_at).all()
    
    def get_active_for_bed(self, bed_id: str) -> Optional[Admission]:
        return self.db.query(Admission).filter(
            and_(Admission.bed_id == bed_id, Admission.status == AdmissionStatus.ACTIVE)
        ).first()
    
    def update(self, admission: Admission, update_data: dict) -> Admission:
        """Stage field changes on an admission"""
        for key, value in update_data.items():
            if hasattr(admission, key):
                setattr(admission, key, value)
        self.db.flush()
        return admission
