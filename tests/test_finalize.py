import pytest
import re
from datetime import datetime
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DatabaseError
from app.domain.billing.models import Bill, BillItem, BillingTransaction, PaymentStatus
from app.domain.billing.service import BedChargeService, FinalizationService


def post(client, headers, admission_id, type_, amount):
    response = client.post(
        "/api/v1/ipd/ledger",
        json={"admissionId": admission_id, "type": type_, "amount": amount},
        headers=headers
    )
    assert response.status_code == 201
    return response.json()["transaction"]


@pytest.mark.finalize
@pytest.mark.integration
class TestFinalizeEndpoint:
    """Closing an admission into a final bill."""

    def test_two_bed_days_and_deposit(
        self, client: TestClient, db_session, admission, doctor,
        nurse_headers, receptionist_headers
    ) -> None:
        service = BedChargeService(db_session, tz_name="UTC")
        service.post_daily_charges("SYSTEM", now=datetime(2024, 3, 1, 0, 10))
        service.post_daily_charges("SYSTEM", now=datetime(2024, 3, 3, 0, 10))
        post(client, nurse_headers, admission["id"], "DEPOSIT", 500)
        
        ledger = client.get(
            "/api/v1/ipd/ledger", params={"admissionId": admission["id"]}, headers=nurse_headers
        ).json()
        assert ledger["summary"]["totalCharges"] == 2000
        assert ledger["summary"]["totalDeposits"] == 500
        assert ledger["summary"]["netDue"] == 1500
        
        response = client.post(
            "/api/v1/ipd/finalize",
            json={"admissionId": admission["id"]},
            headers=receptionist_headers
        )
        
        assert response.status_code == 200
        bill = response.json()["bill"]
        assert re.fullmatch(r"FINAL-\d{8}-[0-9A-F]{6}", bill["billNumber"])
        assert bill["admissionId"] == admission["id"]
        assert bill["doctorId"] == doctor.id
        assert bill["totalAmount"] == 2000
        assert bill["finalAmount"] == 2000
        assert bill["cgst"] == 0
        assert bill["sgst"] == 0
        assert bill["discountAmount"] == 0
        assert bill["paidAmount"] == 500
        assert bill["balanceAmount"] == 1500
        assert bill["paymentStatus"] == "PENDING"
        assert bill["createdBy"] == "reception-1"
        assert bill["notes"] == f"Final bill for admission {admission['id']}"
        assert len(bill["items"]) == 1
        item = bill["items"][0]
        assert item["itemType"] == "OTHER"
        assert item["itemName"] == "IPD Admission Charges (ledger summary)"
        assert item["quantity"] == 1
        assert item["unitPrice"] == 2000
        assert item["totalPrice"] == 2000
        assert item["gstRate"] == 0

    def test_fully_paid_is_marked_paid(
        self, client: TestClient, admission, nurse_headers, headers_for
    ) -> None:
        post(client, nurse_headers, admission["id"], "CHARGE", 1200)
        post(client, nurse_headers, admission["id"], "DEPOSIT", 700)
        post(client, nurse_headers, admission["id"], "PAYMENT", 800)
        
        response = client.post(
            "/api/v1/ipd/finalize",
            json={"admissionId": admission["id"]},
            headers=headers_for("admin-1", "ADMIN")
        )
        
        bill = response.json()["bill"]
        assert response.status_code == 200
        assert bill["paymentStatus"] == "PAID"
        assert bill["paidAmount"] == 1500
        assert bill["balanceAmount"] == 0
        assert bill["finalAmount"] == 1200

    def test_finalize_leaves_ledger_unchanged(
        self, client: TestClient, db_session, admission, nurse_headers, receptionist_headers
    ) -> None:
        post(client, nurse_headers, admission["id"], "CHARGE", 300)
        
        client.post(
            "/api/v1/ipd/finalize", json={"admissionId": admission["id"]}, headers=receptionist_headers
        )
        
        transactions = db_session.query(BillingTransaction).all()
        assert len(transactions) == 1
        assert transactions[0].bill_id is None

    def test_zero_transactions_finalize_as_paid(
        self, client: TestClient, admission, receptionist_headers
    ) -> None:
        response = client.post(
            "/api/v1/ipd/finalize", json={"admissionId": admission["id"]}, headers=receptionist_headers
        )
        
        assert response.status_code == 200
        bill = response.json()["bill"]
        assert bill["totalAmount"] == 0
        assert bill["finalAmount"] == 0
        assert bill["paymentStatus"] == "PAID"

    def test_finalize_requires_admission_id(self, client: TestClient, receptionist_headers) -> None:
        response = client.post("/api/v1/ipd/finalize", json={}, headers=receptionist_headers)
        
        assert response.status_code == 400

    def test_finalize_unknown_admission(self, client: TestClient, receptionist_headers) -> None:
        response = client.post(
            "/api/v1/ipd/finalize", json={"admissionId": "missing"}, headers=receptionist_headers
        )
        
        assert response.status_code == 404

    @pytest.mark.parametrize("role", ["DOCTOR", "NURSE"])
    def test_clinical_roles_cannot_finalize(
        self, client: TestClient, admission, headers_for, role
    ) -> None:
        response = client.post(
            "/api/v1/ipd/finalize",
            json={"admissionId": admission["id"]},
            headers=headers_for("staff-1", role)
        )
        
        assert response.status_code == 403


@pytest.mark.finalize
@pytest.mark.integration
class TestFinalizationService:

    def test_empty_ledger_gives_zero_paid_bill(self, db_session, admission) -> None:
        bill = FinalizationService(db_session).finalize(
            admission["id"], "admin-1", now=datetime(2024, 5, 6, 12, 0)
        )
        
        assert bill.bill_number.startswith("FINAL-20240506-")
        assert bill.final_amount == 0
        assert bill.payment_status == PaymentStatus.PAID
        assert [item.total_price for item in bill.items] == [Decimal("0")]

    def test_each_finalize_creates_new_bill(self, db_session, admission) -> None:
        service = FinalizationService(db_session)
        
        first = service.finalize(admission["id"], "admin-1")
        second = service.finalize(admission["id"], "admin-1")
        
        assert first.bill_number != second.bill_number
        assert db_session.query(Bill).count() == 2
        assert db_session.query(BillItem).count() == 2

    def test_bill_and_item_are_atomic(self, db_session, admission, monkeypatch) -> None:
        service = FinalizationService(db_session)
        stage_bill = service.bill_repo.add
        
        def failing_add(bill_data, items):
            stage_bill(bill_data, items)
            raise OperationalError("INSERT INTO bill_items", {}, Exception("disk I/O error"))
        
        monkeypatch.setattr(service.bill_repo, "add", failing_add)
        
        with pytest.raises(DatabaseError):
            service.finalize(admission["id"], "admin-1")
        
        assert db_session.query(Bill).count() == 0
        assert db_session.query(BillItem).count() == 0
