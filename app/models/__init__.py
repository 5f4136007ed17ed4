from app.domain.auth.models import User, UserRole
from app.domain.patients.models import Patient, Gender
from app.domain.ipd.models import Ward, BedType, Bed, BedStatus, Admission, AdmissionStatus
from app.domain.billing.models import (
    BillingTransaction, TransactionType, PaymentStatus, Bill, BillItem
)
