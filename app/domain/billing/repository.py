"""
Billing Repository Layer

Ledger rows are only ever inserted here; there is no update or delete path
for BillingTransaction.
"""

from typing import Optional, List
from datetime import datetime
from sqlalchemy import and_

from app.domain.billing.models import BillingTransaction, Bill, BillItem, TransactionType


class TransactionRepository:
    """Repository for admission ledger entries"""
    
    def __init__(self, db):
        self.db = db
    
    def add(self, transaction_data: dict) -> BillingTransaction:
        """Stage a new ledger entry"""
        transaction = BillingTransaction(**transaction_data)
        self.db.add(transaction)
        self.db.flush()
        return transaction
    
    def get_for_admission(self, admission_id: str) -> List[BillingTransaction]:
        """All entries for an admission, oldest first"""
        return self.db.query(BillingTransaction).filter(
            BillingTransaction.admission_id == admission_id
        ).order_by(BillingTransaction.processed_at, BillingTransaction.id).all()
    
    def get_by_reference(self, admission_id: str, reference: str) -> Optional[BillingTransaction]:
        return self.db.query(BillingTransaction).filter(
            and_(
                BillingTransaction.admission_id == admission_id,
                BillingTransaction.reference == reference
            )
        ).first()
    
    def find_charge_in_window(
        self,
        admission_id: str,
        marker: str,
        window_start: datetime,
        window_end: datetime
    ) -> Optional[BillingTransaction]:
        """First CHARGE whose description contains marker, processed inside [start, end]"""
        return self.db.query(BillingTransaction).filter(
            and_(
                BillingTransaction.admission_id == admission_id,
                BillingTransaction.type == TransactionType.CHARGE.value,
                BillingTransaction.description.contains(marker),
                BillingTransaction.processed_at >= window_start,
                BillingTransaction.processed_at <= window_end
            )
        ).first()


class BillRepository:
    """Repository for finalized bills"""
    
    def __init__(self, db):
        self.db = db
    
    def add(self, bill_data: dict, items: List[dict]) -> Bill:
        """Stage a bill together with its items"""
        bill = Bill(**bill_data)
        for position, item in enumerate(items):
            bill.items.append(BillItem(position=position, **item))
        self.db.add(bill)
        self.db.flush()
        return bill
    
    def get_by_number(self, bill_number: str) -> Optional[Bill]:
        return self.db.query(Bill).filter(Bill.bill_number == bill_number).first()
