import pytest
from fastapi.testclient import TestClient

from app.domain.patients.models import Patient
from app.domain.ipd.models import Ward, BedType, Bed, BedStatus, Admission, AdmissionStatus


@pytest.mark.wards
@pytest.mark.integration
class TestWards:
    """Ward listing with statistics and ward creation."""

    def test_list_wards_with_statistics(
        self, client: TestClient, db_session, ward, bed_type, bed, admission, nurse_headers
    ) -> None:
        db_session.add_all([
            Bed(ward_id=ward.id, bed_type_id=bed_type.id, bed_number="A-102", status=BedStatus.AVAILABLE),
            Bed(ward_id=ward.id, bed_type_id=bed_type.id, bed_number="A-103", status=BedStatus.MAINTENANCE),
            Bed(ward_id=ward.id, bed_type_id=bed_type.id, bed_number="A-104", status=BedStatus.BLOCKED),
        ])
        db_session.commit()
        
        response = client.get("/api/v1/ipd/wards", headers=nurse_headers)
        
        assert response.status_code == 200
        data = response.json()
        assert len(data["wards"]) == 1
        ward_data = data["wards"][0]
        assert ward_data["name"] == "General Ward A"
        assert [bt["name"] for bt in ward_data["bedTypes"]] == ["General"]
        assert ward_data["statistics"] == {
            "totalBeds": 4,
            "occupiedBeds": 1,
            "availableBeds": 1,
            "maintenanceBeds": 1,
            "blockedBeds": 1,
            "occupancyRate": 25,
        }
        assert data["overallStats"]["totalBeds"] == 4
        assert data["overallStats"]["occupancyRate"] == 25

    def test_inactive_wards_hidden(self, client: TestClient, db_session, nurse_headers) -> None:
        db_session.add(Ward(name="Closed Wing", is_active=False))
        db_session.commit()
        
        response = client.get("/api/v1/ipd/wards", headers=nurse_headers)
        
        assert response.json()["wards"] == []
        assert response.json()["overallStats"]["occupancyRate"] == 0

    def test_create_ward(self, client: TestClient, admin_headers) -> None:
        response = client.post(
            "/api/v1/ipd/wards",
            json={"name": "ICU", "floor": "2", "department": "Critical Care", "capacity": 8},
            headers=admin_headers
        )
        
        assert response.status_code == 201
        assert response.json()["ward"]["name"] == "ICU"
        assert response.json()["ward"]["capacity"] == 8

    def test_create_ward_duplicate(self, client: TestClient, ward, admin_headers) -> None:
        response = client.post("/api/v1/ipd/wards", json={"name": ward.name}, headers=admin_headers)
        
        assert response.status_code == 409

    def test_create_ward_requires_name(self, client: TestClient, admin_headers) -> None:
        response = client.post("/api/v1/ipd/wards", json={"floor": "3"}, headers=admin_headers)
        
        assert response.status_code == 400

    def test_only_admin_creates_wards(self, client: TestClient, doctor_headers) -> None:
        response = client.post("/api/v1/ipd/wards", json={"name": "ICU"}, headers=doctor_headers)
        
        assert response.status_code == 403


@pytest.mark.wards
@pytest.mark.integration
class TestBedTypes:

    def test_create_and_list_bed_types(self, client: TestClient, ward, admin_headers) -> None:
        response = client.post(
            "/api/v1/ipd/bed-types",
            json={"wardId": ward.id, "name": "Private", "dailyRate": 3500.5, "amenities": ["TV", "AC"]},
            headers=admin_headers
        )
        
        assert response.status_code == 201
        created = response.json()["bedType"]
        assert created["dailyRate"] == 3500.5
        assert created["amenities"] == ["TV", "AC"]
        assert created["maxOccupancy"] == 1
        
        listed = client.get(
            "/api/v1/ipd/bed-types", params={"wardId": ward.id}, headers=admin_headers
        ).json()["bedTypes"]
        assert [bt["name"] for bt in listed] == ["Private"]

    def test_bed_type_name_unique_per_ward(
        self, client: TestClient, ward, bed_type, admin_headers
    ) -> None:
        response = client.post(
            "/api/v1/ipd/bed-types",
            json={"wardId": ward.id, "name": bed_type.name, "dailyRate": 100},
            headers=admin_headers
        )
        
        assert response.status_code == 409

    def test_bed_type_unknown_ward(self, client: TestClient, admin_headers) -> None:
        response = client.post(
            "/api/v1/ipd/bed-types",
            json={"wardId": "missing", "name": "ICU", "dailyRate": 100},
            headers=admin_headers
        )
        
        assert response.status_code == 404

    @pytest.mark.parametrize("body", [
        {"name": "ICU", "dailyRate": 100},
        {"wardId": "w", "dailyRate": 100},
        {"wardId": "w", "name": "ICU"},
    ])
    def test_bed_type_required_fields(self, client: TestClient, admin_headers, body) -> None:
        response = client.post("/api/v1/ipd/bed-types", json=body, headers=admin_headers)
        
        assert response.status_code == 400

    def test_bed_type_malformed_rate(self, client: TestClient, ward, admin_headers) -> None:
        response = client.post(
            "/api/v1/ipd/bed-types",
            json={"wardId": ward.id, "name": "ICU", "dailyRate": "lots"},
            headers=admin_headers
        )
        
        assert response.status_code == 400
        assert "dailyRate" in response.json()["validation_errors"]


@pytest.mark.wards
@pytest.mark.integration
class TestBeds:
    """Bed listing, creation and manual status changes."""

    def test_create_bed(self, client: TestClient, ward, bed_type, admin_headers) -> None:
        response = client.post(
            "/api/v1/ipd/beds",
            json={"wardId": ward.id, "bedTypeId": bed_type.id, "bedNumber": "A-201"},
            headers=admin_headers
        )
        
        assert response.status_code == 201
        bed = response.json()["bed"]
        assert bed["bedNumber"] == "A-201"
        assert bed["status"] == "AVAILABLE"
        assert bed["isOccupied"] is False
        assert bed["currentAdmission"] is None

    def test_create_bed_duplicate_number(
        self, client: TestClient, ward, bed_type, bed, admin_headers
    ) -> None:
        response = client.post(
            "/api/v1/ipd/beds",
            json={"wardId": ward.id, "bedTypeId": bed_type.id, "bedNumber": bed.bed_number},
            headers=admin_headers
        )
        
        assert response.status_code == 409

    def test_create_bed_with_foreign_bed_type(
        self, client: TestClient, db_session, ward, admin_headers
    ) -> None:
        other_ward = Ward(name="Maternity", is_active=True)
        db_session.add(other_ward)
        db_session.flush()
        foreign_type = BedType(ward_id=other_ward.id, name="Labour", daily_rate=2000)
        db_session.add(foreign_type)
        db_session.commit()
        
        response = client.post(
            "/api/v1/ipd/beds",
            json={"wardId": ward.id, "bedTypeId": foreign_type.id, "bedNumber": "A-301"},
            headers=admin_headers
        )
        
        assert response.status_code == 404

    def test_list_beds_shows_current_admission(
        self, client: TestClient, admission, patient, nurse_headers
    ) -> None:
        response = client.get("/api/v1/ipd/beds", headers=nurse_headers)
        
        assert response.status_code == 200
        beds = response.json()["beds"]
        assert len(beds) == 1
        assert beds[0]["status"] == "OCCUPIED"
        assert beds[0]["isOccupied"] is True
        assert beds[0]["currentAdmission"]["id"] == admission["id"]
        assert beds[0]["currentAdmission"]["patient"]["firstName"] == patient.first_name
        assert beds[0]["ward"]["name"] == "General Ward A"
        assert beds[0]["bedType"]["dailyRate"] == 1000

    def test_list_beds_filters(
        self, client: TestClient, db_session, ward, bed_type, free_bed_type, bed, nurse_headers
    ) -> None:
        db_session.add(Bed(ward_id=ward.id, bed_type_id=free_bed_type.id, bed_number="OBS-1",
                           status=BedStatus.MAINTENANCE))
        db_session.commit()
        
        by_status = client.get(
            "/api/v1/ipd/beds", params={"status": "MAINTENANCE"}, headers=nurse_headers
        ).json()["beds"]
        by_type = client.get(
            "/api/v1/ipd/beds", params={"bedType": "General", "wardId": ward.id}, headers=nurse_headers
        ).json()["beds"]
        
        assert [b["bedNumber"] for b in by_status] == ["OBS-1"]
        assert [b["bedNumber"] for b in by_type] == ["A-101"]

    def test_list_beds_rejects_unknown_status(self, client: TestClient, nurse_headers) -> None:
        response = client.get("/api/v1/ipd/beds", params={"status": "BROKEN"}, headers=nurse_headers)
        
        assert response.status_code == 400

    def test_update_bed_status(self, client: TestClient, bed, doctor_headers) -> None:
        response = client.put(
            "/api/v1/ipd/beds",
            json={"bedId": bed.id, "status": "maintenance", "notes": "Mattress replacement"},
            headers=doctor_headers
        )
        
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Bed status updated successfully"
        assert data["bed"]["status"] == "MAINTENANCE"
        assert data["bed"]["notes"] == "Mattress replacement"

    def test_occupied_bed_cannot_be_released(
        self, client: TestClient, admission, db_session, bed, doctor, doctor_headers
    ) -> None:
        response = client.put(
            "/api/v1/ipd/beds", json={"bedId": bed.id, "status": "AVAILABLE"}, headers=doctor_headers
        )
        
        assert response.status_code == 409
        assert response.json()["error_code"] == "BED_UNAVAILABLE"
        db_session.refresh(bed)
        assert bed.status == BedStatus.OCCUPIED
        
        other = Patient(patient_number="P000002", first_name="Lata", last_name="Shah")
        db_session.add(other)
        db_session.commit()
        second = client.post(
            "/api/v1/ipd/admissions",
            json={"patientId": other.id, "bedId": bed.id, "doctorId": doctor.id},
            headers=doctor_headers
        )
        
        assert second.status_code == 409
        assert db_session.query(Admission).filter(
            Admission.bed_id == bed.id,
            Admission.status == AdmissionStatus.ACTIVE
        ).count() == 1

    def test_release_after_maintenance(self, client: TestClient, db_session, bed, doctor_headers) -> None:
        bed.status = BedStatus.MAINTENANCE
        db_session.commit()
        
        response = client.put(
            "/api/v1/ipd/beds", json={"bedId": bed.id, "status": "AVAILABLE"}, headers=doctor_headers
        )
        
        assert response.status_code == 200
        assert response.json()["bed"]["status"] == "AVAILABLE"

    def test_update_bed_invalid_status(self, client: TestClient, bed, doctor_headers) -> None:
        response = client.put(
            "/api/v1/ipd/beds", json={"bedId": bed.id, "status": "BROKEN"}, headers=doctor_headers
        )
        
        assert response.status_code == 400

    def test_update_unknown_bed(self, client: TestClient, doctor_headers) -> None:
        response = client.put(
            "/api/v1/ipd/beds", json={"bedId": "missing", "status": "BLOCKED"}, headers=doctor_headers
        )
        
        assert response.status_code == 404

    def test_receptionist_cannot_change_beds(
        self, client: TestClient, bed, receptionist_headers
    ) -> None:
        response = client.put(
            "/api/v1/ipd/beds", json={"bedId": bed.id, "status": "BLOCKED"}, headers=receptionist_headers
        )
        
        assert response.status_code == 403
