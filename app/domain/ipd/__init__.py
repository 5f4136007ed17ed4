# IPD domain module
from app.domain.ipd.models import (
    Admission,
    AdmissionStatus,
    Bed,
    BedStatus,
    BedType,
    Ward,
)

__all__ = [
    "Admission",
    "AdmissionStatus",
    "Bed",
    "BedStatus",
    "BedType",
    "Ward",
]
