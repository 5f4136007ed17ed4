"""
Billing Service Layer

Ledger accumulation, transaction posting, the daily bed-charge job and
admission finalization.
"""

from typing import Optional, List, Dict, Any, Iterable, Tuple
from dataclasses import dataclass, asdict
from datetime import datetime, date, time, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from zoneinfo import ZoneInfo
import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import ValidationError, NotFoundError, handle_database_error
from app.domain.billing.models import (
    BillingTransaction, Bill, TransactionType, PaymentStatus
)
from app.domain.billing.repository import TransactionRepository, BillRepository
from app.domain.ipd.models import Admission
from app.domain.ipd.repository import AdmissionRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

BED_DAILY_MARKER = "BED_DAILY"
BED_DAILY_REFERENCE = "AUTO:BED_DAILY"
FINAL_BILL_ITEM_NAME = "IPD Admission Charges (ledger summary)"


@dataclass
class LedgerSummary:
    """Category totals for one admission's ledger"""
    total_charges: Decimal = ZERO
    total_deposits: Decimal = ZERO
    total_payments: Decimal = ZERO
    total_refunds: Decimal = ZERO
    total_adjustments: Decimal = ZERO
    net_due: Decimal = ZERO

    @property
    def total_credits(self) -> Decimal:
        return self.total_deposits + self.total_payments

    def as_dict(self) -> Dict[str, Decimal]:
        return asdict(self)


def summarize_transactions(transactions: Iterable[BillingTransaction]) -> LedgerSummary:
    """
    Fold ledger rows into category totals.

    Types are compared upper-cased; rows with any other type are ignored.
    Net due is clamped at zero, so an overpaid admission shows nothing owing.
    """
    totals = {member.value: ZERO for member in TransactionType}

    for txn in transactions:
        kind = (txn.type or "").upper()
        if kind not in totals:
            continue
        totals[kind] += Decimal(str(txn.amount or 0))

    summary = LedgerSummary(
        total_charges=totals[TransactionType.CHARGE.value],
        total_deposits=totals[TransactionType.DEPOSIT.value],
        total_payments=totals[TransactionType.PAYMENT.value],
        total_refunds=totals[TransactionType.REFUND.value],
        total_adjustments=totals[TransactionType.ADJUSTMENT.value],
    )
    summary.net_due = max(
        ZERO,
        summary.total_charges
        - (summary.total_deposits + summary.total_payments)
        + summary.total_refunds
        - summary.total_adjustments,
    )
    return summary


def parse_amount(value: Any) -> Decimal:
    """
    Accept a finite JSON number; strings and booleans are rejected.

    The result is rounded half-up to whole cents, the precision amounts are
    stored at.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValidationError("amount must be a finite number", details={"field": "amount"})
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise InvalidOperation
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("amount must be a finite number", details={"field": "amount"})


def day_window(now: datetime, tz_name: str) -> Tuple[date, datetime, datetime]:
    """
    Calendar day containing `now` in the hospital timezone.

    `now` is naive UTC, as stored in processed_at. Returns the local date and
    the inclusive [start, end] bounds of that day as naive UTC.
    """
    tz = ZoneInfo(tz_name)
    local_day = now.replace(tzinfo=timezone.utc).astimezone(tz).date()
    start = datetime.combine(local_day, time.min, tzinfo=tz).astimezone(timezone.utc)
    next_start = datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)
    end = next_start - timedelta(microseconds=1)
    return local_day, start.replace(tzinfo=None), end.replace(tzinfo=None)


class LedgerService:
    """Reads and appends an admission's billing ledger"""
    
    def __init__(self, db):
        self.db = db
        self.transaction_repo = TransactionRepository(db)
        self.admission_repo = AdmissionRepository(db)
    
    def require_admission(self, admission_id: Optional[str], detailed: bool = False) -> Admission:
        if not admission_id:
            raise ValidationError("admissionId is required", details={"field": "admissionId"})
        
        if detailed:
            admission = self.admission_repo.get_with_details(admission_id)
        else:
            admission = self.admission_repo.get_by_id(admission_id)
        if not admission:
            raise NotFoundError("Admission not found", details={"admission_id": admission_id})
        return admission
    
    def get_ledger(self, admission_id: Optional[str]) -> Dict[str, Any]:
        """Admission with joins, its transactions oldest first, and the summary"""
        admission = self.require_admission(admission_id, detailed=True)
        transactions = self.transaction_repo.get_for_admission(admission_id)
        
        return {
            "admission": admission,
            "transactions": transactions,
            "summary": summarize_transactions(transactions),
        }
    
    def post_transaction(
        self,
        admission_id: Optional[str],
        type: Optional[str],
        amount: Any,
        processed_by: str,
        patient_id: Optional[str] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        payment_method: Optional[str] = None,
        posting_key: Optional[str] = None,
        processed_at: Optional[datetime] = None
    ) -> BillingTransaction:
        """Append one ledger entry for an admission"""
        if not admission_id or not type:
            logger.warning("Rejected ledger post: admission_id=%r type=%r", admission_id, type)
            raise ValidationError("admissionId, type, amount are required")
        value = parse_amount(amount)
        if not processed_by:
            raise ValidationError("processed_by is required")
        
        admission = self.require_admission(admission_id)
        
        transaction_data = {
            "admission_id": admission.id,
            "bill_id": None,
            "patient_id": patient_id or admission.patient_id,
            "type": str(type).upper(),
            "amount": value,
            "description": description or None,
            "reference": reference or None,
            "posting_key": posting_key,
            "payment_method": payment_method or None,
            "payment_status": PaymentStatus.COMPLETED.value,
            "processed_by": processed_by,
            "processed_at": processed_at or datetime.utcnow(),
        }
        
        try:
            transaction = self.transaction_repo.add(transaction_data)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "post ledger transaction") from e
        
        logger.info(
            "Posted %s %s on admission %s by %s",
            transaction.type, transaction.amount, admission.id, processed_by
        )
        return transaction
    
    def post_once(
        self,
        admission_id: str,
        reference: str,
        amount: Any,
        processed_by: str,
        description: Optional[str] = None,
        patient_id: Optional[str] = None
    ) -> Tuple[BillingTransaction, bool]:
        """
        Post a CHARGE tagged with `reference` unless the admission already has one.

        Used by ancillary departments (pharmacy dispense, imaging, OT) whose
        completion hooks may fire more than once for the same order.
        """
        if not reference:
            raise ValidationError("reference is required", details={"field": "reference"})
        
        existing = self.transaction_repo.get_by_reference(admission_id, reference)
        if existing:
            logger.debug("Charge %s already on admission %s", reference, admission_id)
            return existing, False
        
        transaction = self.post_transaction(
            admission_id=admission_id,
            type=TransactionType.CHARGE.value,
            amount=amount,
            processed_by=processed_by,
            patient_id=patient_id,
            description=description,
            reference=reference
        )
        return transaction, True


class BedChargeService:
    """Posts one bed-occupancy CHARGE per active admission per calendar day"""
    
    def __init__(self, db, tz_name: Optional[str] = None):
        self.db = db
        self.tz_name = tz_name or settings.HOSPITAL_TIMEZONE
        self.admission_repo = AdmissionRepository(db)
        self.transaction_repo = TransactionRepository(db)
    
    @staticmethod
    def posting_key(admission_id: str, day: date) -> str:
        return f"{BED_DAILY_REFERENCE}:{admission_id}:{day.isoformat()}"
    
    def post_daily_charges(
        self,
        processed_by: str,
        admission_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Run the bed-day job for one admission, or every ACTIVE admission.

        Safe to re-run within a day: an existing BED_DAILY charge inside the
        day window is detected up front, and a concurrent run that slips past
        that check is stopped by the unique posting key.
        """
        if not processed_by:
            raise ValidationError("processed_by is required")
        
        now = now or datetime.utcnow()
        day, window_start, window_end = day_window(now, self.tz_name)
        
        admissions = self.admission_repo.get_active(admission_id)
        results = []
        
        for admission in admissions:
            admission_key = admission.id
            bed_type = admission.bed.bed_type if admission.bed else None
            rate = Decimal(str(bed_type.daily_rate or 0)) if bed_type else ZERO
            
            if rate <= 0:
                logger.debug("No daily rate for admission %s, skipping", admission_key)
                results.append({"admission_id": admission_key, "posted": False, "amount": ZERO})
                continue
            
            existing = self.transaction_repo.find_charge_in_window(
                admission_key, BED_DAILY_MARKER, window_start, window_end
            )
            if existing:
                logger.debug("Bed charge for %s already posted on %s", admission_key, day)
                results.append({"admission_id": admission_key, "posted": False, "amount": ZERO})
                continue
            
            try:
                self.transaction_repo.add({
                    "admission_id": admission_key,
                    "bill_id": None,
                    "patient_id": admission.patient_id,
                    "type": TransactionType.CHARGE.value,
                    "amount": rate,
                    "description": f"{BED_DAILY_MARKER} {day.isoformat()} @ ₹{rate}",
                    "reference": BED_DAILY_REFERENCE,
                    "posting_key": self.posting_key(admission_key, day),
                    "payment_method": None,
                    "payment_status": PaymentStatus.COMPLETED.value,
                    "processed_by": processed_by,
                    "processed_at": now,
                })
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("Concurrent bed charge for %s on %s detected, not reposted", admission_key, day)
                results.append({"admission_id": admission_key, "posted": False, "amount": ZERO})
                continue
            except SQLAlchemyError as e:
                self.db.rollback()
                raise handle_database_error(e, "post daily bed charge") from e
            
            logger.info("Posted bed charge %s for admission %s on %s", rate, admission_key, day)
            results.append({"admission_id": admission_key, "posted": True, "amount": rate})
        
        return results


class FinalizationService:
    """Closes an admission's ledger into a single summary bill"""
    
    def __init__(self, db):
        self.db = db
        self.ledger_service = LedgerService(db)
        self.bill_repo = BillRepository(db)
        self.transaction_repo = TransactionRepository(db)
    
    def _generate_bill_number(self, now: datetime) -> str:
        """FINAL-<date>-<random suffix>, retried until unused"""
        while True:
            bill_number = f"FINAL-{now.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"
            if not self.bill_repo.get_by_number(bill_number):
                return bill_number
    
    def finalize(
        self,
        admission_id: Optional[str],
        created_by: str,
        now: Optional[datetime] = None
    ) -> Bill:
        """
        Materialize the closing bill for an admission.

        final_amount is the gross of all charges; deposits and payments go to
        paid_amount and the clamped net due to balance_amount. The bill and
        its single summary item are committed together.
        """
        if not created_by:
            raise ValidationError("created_by is required")
        
        admission = self.ledger_service.require_admission(admission_id)
        summary = summarize_transactions(self.transaction_repo.get_for_admission(admission.id))
        now = now or datetime.utcnow()
        
        bill_data = {
            "bill_number": self._generate_bill_number(now),
            "patient_id": admission.patient_id,
            "doctor_id": admission.admitted_by,
            "admission_id": admission.id,
            "total_amount": summary.total_charges,
            "cgst": ZERO,
            "sgst": ZERO,
            "discount_amount": ZERO,
            "final_amount": summary.total_charges,
            "payment_status": PaymentStatus.PAID if summary.net_due == 0 else PaymentStatus.PENDING,
            "paid_amount": summary.total_credits,
            "balance_amount": summary.net_due,
            "notes": f"Final bill for admission {admission.id}",
            "created_by": created_by,
            "created_at": now,
        }
        items = [{
            "item_type": "OTHER",
            "item_name": FINAL_BILL_ITEM_NAME,
            "quantity": 1,
            "unit_price": summary.total_charges,
            "total_price": summary.total_charges,
            "gst_rate": ZERO,
        }]
        
        try:
            bill = self.bill_repo.add(bill_data, items)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "finalize admission bill") from e
        
        logger.info(
            "Finalized admission %s as %s: charges=%s net_due=%s",
            admission.id, bill.bill_number, summary.total_charges, summary.net_due
        )
        return bill
