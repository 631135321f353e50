"""
test_api_endpoints.py
=====================
API test cases for the telemedicine booking backend.
Tests cover:
 - Root health check
 - Doctor ranking, search and recommendation
 - Slot lookup
 - Lead capture, duplicate rejection and triage order
 - Dashboard and doctor analytics
 - Input validation
"""

import sys, os
# Ensure the package is discoverable by Python when running from /tests
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import datetime

import pytest
from fastapi.testclient import TestClient

from telemed_backend.main import app
from telemed_backend.db import session_scope
from telemed_backend.models import Appointment, AppointmentStatus, Doctor, PaymentStatus


# --------------------------------------------------------------------------
# FIXTURE: Create isolated test client + temporary DB
# --------------------------------------------------------------------------

@pytest.fixture(scope="module")
def client():
    """
    Starts the app against the temporary SQLite database.
    Startup creates the tables and seeds the default doctors.
    """
    with TestClient(app) as c:
        yield c


def _doctor_id(name: str) -> int:
    with session_scope() as db:
        return db.query(Doctor).filter(Doctor.name == name).one().id


# --------------------------------------------------------------------------
# TESTS
# --------------------------------------------------------------------------

def test_root_endpoint(client):
    """
    ✅ Test the root health check endpoint.
    Expected: 200 OK and "Telemedicine" message.
    """
    res = client.get("/")
    assert res.status_code == 200
    assert "Telemedicine" in res.json()["message"]


def test_top_doctors_ordered_by_rating(client):
    """
    ✅ Test top-N ranking of the seeded roster.
    Expected: three doctors, highest rating first.
    """
    res = client.get("/api/doctors/top", params={"n": 3})
    assert res.status_code == 200

    names = [d["name"] for d in res.json()]
    assert names == ["Dr. Sunita Reddy", "Dr. Rajesh Kumar", "Dr. Priya Sharma"]


def test_search_doctors_by_specialization(client):
    res = client.get("/api/doctors/search", params={"specialization": "cardiology", "min_rating": 4})
    assert res.status_code == 200

    data = res.json()
    assert [d["name"] for d in data] == ["Dr. Rajesh Kumar"]
    assert "Cardiology" in data[0]["specializations"]


def test_recommend_doctors(client):
    """
    ✅ Test doctor recommendations for a cardiology booking on a Monday morning.
    Expected: at most five matches, cardiologist first, scores descending.
    """
    payload = {
        "specialization": "Cardiology",
        "preferred_time": "2024-01-01T10:00:00",
        "urgency": "high",
        "max_fee": 2000,
        "symptoms": "palpitations",
    }
    res = client.post("/api/appointments/recommend-doctors", json=payload)
    assert res.status_code == 200

    matches = res.json()
    assert 0 < len(matches) <= 5
    assert matches[0]["doctor"]["name"] == "Dr. Rajesh Kumar"
    assert matches[0]["score"] == pytest.approx(82.75)

    scores = [m["score"] for m in matches]
    assert scores == sorted(scores, reverse=True)
    assert all(0 <= s <= 100 for s in scores)


def test_recommend_doctors_invalid_input(client):
    """
    ✅ Test invalid input (missing specialization).
    Expected: 422 validation error from FastAPI.
    """
    res = client.post("/api/appointments/recommend-doctors", json={"max_fee": 500})
    assert res.status_code == 422


def test_available_slots(client):
    doctor_id = _doctor_id("Dr. Arjun Nair")
    day = datetime.date(2024, 1, 2)

    with session_scope() as db:
        db.add(Appointment(
            doctor_id=doctor_id,
            patient_id=99,
            appointment_date=datetime.datetime(2024, 1, 2, 10, 0),
            fee=500,
        ))

    res = client.get(f"/api/doctors/{doctor_id}/available-slots", params={"date": day.isoformat()})
    assert res.status_code == 200

    slots = res.json()
    assert len(slots) == 15
    assert slots[0]["start_time"] == "09:00"
    booked = [s for s in slots if not s["available"]]
    assert [s["start_time"] for s in booked] == ["10:00"]


def test_available_slots_doctor_not_found(client):
    """
    ✅ Test requesting slots of a non-existing doctor.
    Expected: 404 with 'Doctor not found' message.
    """
    res = client.get("/api/doctors/9999/available-slots", params={"date": "2024-01-02"})
    assert res.status_code == 404
    assert res.json()["detail"] == "Doctor not found"


def test_lead_capture_and_triage(client):
    """
    ✅ Test full lead flow:
    - Capture a patient and a doctor lead
    - Reject a duplicate email
    - Hand out the most urgent lead first
    """
    patient = {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@example.com",
        "phone": "+91 98765 43210",
        "kind": "patient",
        "source": "referral",
        "medical_condition": "Chest pain since morning",
    }
    doctor = {
        "first_name": "Ravi",
        "last_name": "Iyer",
        "email": "ravi@example.com",
        "phone": "+91 90000 00001",
        "kind": "doctor",
        "specialization": "Cardiology",
    }

    res = client.post("/api/leads", json=patient)
    assert res.status_code == 201
    assert res.json()["priority"] == 10

    res = client.post("/api/leads", json=doctor)
    assert res.status_code == 201
    assert res.json()["priority"] == 8

    duplicate = dict(patient, phone="+91 11111 11111", first_name="Janet")
    res = client.post("/api/leads", json=duplicate)
    assert res.status_code == 409

    res = client.get("/api/leads/queue")
    assert res.status_code == 200
    queue = res.json()
    assert queue["status"]["total_leads"] == 2
    assert [l["priority"] for l in queue["leads"]] == [10, 8]

    res = client.get("/api/leads/next-qualified")
    assert res.status_code == 200
    assert res.json()["email"] == "jane@example.com"

    res = client.get("/api/leads/next-qualified")
    assert res.status_code == 200
    assert res.json()["email"] == "ravi@example.com"

    res = client.get("/api/leads/next-qualified")
    assert res.status_code == 404


def test_lead_invalid_kind(client):
    payload = {
        "first_name": "A",
        "last_name": "B",
        "email": "ab@example.com",
        "phone": "12345",
        "kind": "nurse",
    }
    res = client.post("/api/leads", json=payload)
    assert res.status_code == 422


def test_appointment_analytics(client):
    """
    ✅ Test trailing-window dashboard metrics.
    Expected: completed+paid revenue counted, rates computed over the window.
    """
    doctor_id = _doctor_id("Dr. Priya Sharma")
    now = datetime.datetime.utcnow()

    with session_scope() as db:
        db.add_all([
            Appointment(
                doctor_id=doctor_id, patient_id=1, appointment_date=now - datetime.timedelta(days=1),
                status=AppointmentStatus.completed, payment_status=PaymentStatus.paid, fee=1200,
                is_first_appointment=True,
            ),
            Appointment(
                doctor_id=doctor_id, patient_id=2, appointment_date=now - datetime.timedelta(hours=2),
                status=AppointmentStatus.cancelled, fee=1200,
            ),
            Appointment(
                doctor_id=doctor_id, patient_id=3, appointment_date=now - datetime.timedelta(days=40),
                status=AppointmentStatus.completed, payment_status=PaymentStatus.paid, fee=1200,
            ),
        ])

    res = client.get("/api/dashboard/appointment-analytics", params={"days": 7})
    assert res.status_code == 200

    analytics = res.json()["analytics"]
    assert analytics["appointments"]["total"] == 2
    assert analytics["appointments"]["completion_rate"] == 50.0
    assert analytics["appointments"]["cancellation_rate"] == 50.0
    assert analytics["revenue"]["total_revenue"] == 1200
    assert len(analytics["revenue"]["daily_revenue"]) == 7
    assert analytics["patient_acquisition"]["new_patients"] == 1


def test_doctor_analytics(client):
    """
    ✅ Test doctor pattern analytics.
    Expected: appointments 20 and 25 minutes apart form one cluster.
    """
    doctor_id = _doctor_id("Dr. Vikram Singh")
    base = (datetime.datetime.utcnow() - datetime.timedelta(days=2)).replace(
        hour=10, minute=0, second=0, microsecond=0
    )
    offsets = [0, 20, 45, 120]

    with session_scope() as db:
        db.add_all([
            Appointment(
                doctor_id=doctor_id, patient_id=10 + i,
                appointment_date=base + datetime.timedelta(minutes=m), fee=1800,
            )
            for i, m in enumerate(offsets)
        ])

    res = client.get(f"/api/doctors/{doctor_id}/analytics")
    assert res.status_code == 200

    data = res.json()
    assert [c["appointment_count"] for c in data["clusters"]] == [3, 1]
    assert data["peak_hours"]["peak_window"]["appointment_count"] == 4
    assert data["workload"]["appointment_count"] == 4
    assert data["workload"]["is_overloaded"] is False


def test_doctor_analytics_not_found(client):
    res = client.get("/api/doctors/9999/analytics")
    assert res.status_code == 404
