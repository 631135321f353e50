"""
services.py
===========
Request-scoped orchestration between the database and the in-memory
ranking, matching, triage and analytics utilities:
 - Converts ORM rows into plain records
 - Builds a fresh index / queue / analyzer for every call
 - Seeds the default doctor roster
"""

import datetime
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from .config import CLUSTER_GAP_MINUTES
from .duplicates import DuplicateDetector
from .lead_queue import LeadQualificationEngine
from .matching import matcher
from .metrics import AppointmentPatternAnalyzer, WindowedMetrics
from .models import (
    Appointment, Doctor, DoctorSlot, Lead, LeadStage,
)
from .ranking import DoctorRankingIndex
from .schemas import (
    AppointmentSample, AvailabilitySlot, BookingRequest, DoctorMatch,
    DoctorRecord, LeadCreate, LeadRecord, LeadResponse, TimeSlot,
)

logger = logging.getLogger(__name__)


class DuplicateLeadError(Exception):
    """Raised when a captured lead reuses a known email or phone number."""

    def __init__(self, fields: List[str]):
        super().__init__(f"Lead already exists ({', '.join(fields)})")
        self.fields = fields


# ---------------------------------------------------------------------------
# ROW -> RECORD CONVERSION
# ---------------------------------------------------------------------------

def doctor_to_record(doctor: Doctor) -> DoctorRecord:
    return DoctorRecord(
        id=doctor.id,
        name=doctor.name,
        specializations=doctor.specializations,
        rating=doctor.rating,
        experience_years=doctor.experience_years,
        consultation_fee=doctor.consultation_fee,
        city=doctor.city,
        weekly_availability=[
            AvailabilitySlot(
                day_of_week=s.day_of_week,
                start_time=s.start_time,
                end_time=s.end_time,
                slot_duration_minutes=s.slot_duration_minutes or 30,
            )
            for s in doctor.slots
        ],
    )


def lead_to_record(lead: Lead) -> LeadRecord:
    return LeadRecord(
        id=lead.id,
        kind=lead.kind,
        source=lead.source,
        medical_condition=lead.medical_condition,
        specialization=lead.specialization,
        interaction_count=len(lead.interactions),
        created_at=lead.created_at or datetime.datetime.utcnow(),
        first_name=lead.first_name,
        last_name=lead.last_name,
        email=lead.email,
        phone=lead.phone,
    )


def appointment_to_sample(appointment: Appointment) -> AppointmentSample:
    return AppointmentSample(
        id=appointment.id,
        timestamp=appointment.appointment_date,
        doctor_id=appointment.doctor_id,
        patient_id=appointment.patient_id,
        status=appointment.status,
        payment_status=appointment.payment_status,
        fee=appointment.fee,
        is_first_appointment=bool(appointment.is_first_appointment),
        patient_rating=appointment.patient_rating,
    )


def load_doctor_records(db: Session) -> List[DoctorRecord]:
    return [doctor_to_record(d) for d in db.query(Doctor).all()]


# ---------------------------------------------------------------------------
# DOCTORS
# ---------------------------------------------------------------------------

def top_doctors(db: Session, n: int = 10) -> List[DoctorRecord]:
    index = DoctorRankingIndex.from_doctors(load_doctor_records(db))
    return index.top_n(n)


def search_doctors(db: Session, specialization: str, min_rating: float = 0) -> List[DoctorRecord]:
    index = DoctorRankingIndex.from_doctors(load_doctor_records(db))
    return index.range_by_specialization(specialization, min_rating)


def recommend_doctors(db: Session, request: BookingRequest) -> List[DoctorMatch]:
    doctors = load_doctor_records(db)
    matches = matcher.find_best_matches(request, doctors)
    logger.info(
        "Matched %d of %d doctors for %s (urgency=%s)",
        len(matches), len(doctors), request.specialization, request.urgency.value,
    )
    return [DoctorMatch(doctor=d, score=s) for d, s in matches]


def available_slots(db: Session, doctor_id: int, day: datetime.date) -> List[TimeSlot]:
    day_start = datetime.datetime.combine(day, datetime.time.min)
    booked = (
        db.query(Appointment.appointment_date)
        .filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date >= day_start,
            Appointment.appointment_date < day_start + datetime.timedelta(days=1),
        )
        .all()
    )
    return matcher.find_optimal_slots(day, booked=[row[0] for row in booked])


def doctor_analytics(
    db: Session,
    doctor_id: int,
    days: int,
    now: Optional[datetime.datetime] = None,
) -> Dict:
    now = now or datetime.datetime.utcnow()
    start = now - datetime.timedelta(days=days)
    rows = (
        db.query(Appointment)
        .filter(Appointment.doctor_id == doctor_id, Appointment.appointment_date >= start)
        .order_by(Appointment.appointment_date)
        .all()
    )

    analyzer = AppointmentPatternAnalyzer(appointment_to_sample(a) for a in rows)
    workload = [w for w in analyzer.analyze_workload() if w["doctor_id"] == doctor_id]
    return {
        "doctor_id": doctor_id,
        "days": days,
        "peak_hours": analyzer.find_peak_hours(),
        "clusters": analyzer.find_clusters(CLUSTER_GAP_MINUTES),
        "workload": workload[0] if workload else None,
    }


# ---------------------------------------------------------------------------
# LEADS
# ---------------------------------------------------------------------------

def capture_lead(db: Session, payload: LeadCreate) -> LeadResponse:
    """
    Store a new lead unless its email or phone is already known.
    Near-identical names are reported back but do not block capture.
    """
    detector = DuplicateDetector()
    for existing in db.query(Lead).all():
        detector.add(lead_to_record(existing))

    candidate = LeadRecord(**payload.model_dump())
    duplicates = detector.check(candidate)
    if duplicates["is_duplicate"]:
        fields = [f for f in ("email", "phone") if duplicates[f] is not None]
        logger.warning("Rejected duplicate lead (%s)", ", ".join(fields))
        raise DuplicateLeadError(fields)

    engine = LeadQualificationEngine()
    qualified = engine.add_lead(candidate)

    lead = Lead(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
        kind=payload.kind,
        source=payload.source,
        medical_condition=payload.medical_condition,
        specialization=payload.specialization,
        priority=qualified.priority,
        next_follow_up=qualified.next_follow_up,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    logger.info("📋 Lead %s captured with priority %d", lead.id, lead.priority)

    similar = []
    if duplicates["name"] is not None:
        similar.append(str(duplicates["name"].id))
    similar.extend(str(s["lead"].id) for s in detector.find_similar_names(candidate))

    return LeadResponse(
        id=lead.id,
        kind=lead.kind.value,
        source=lead.source.value if lead.source else None,
        priority=lead.priority,
        next_follow_up=lead.next_follow_up,
        possible_duplicates=similar,
    )


def _open_lead_engine(db: Session) -> LeadQualificationEngine:
    engine = LeadQualificationEngine()
    for lead in db.query(Lead).filter(Lead.stage == LeadStage.prospect).all():
        engine.add_lead(lead_to_record(lead))
    return engine


def lead_queue(db: Session) -> Dict:
    engine = _open_lead_engine(db)
    status = engine.queue_status()
    return {"status": status, "leads": engine.drain()}


def next_qualified_lead(db: Session) -> Optional[LeadRecord]:
    """
    Hand out the most urgent prospect and move it to the qualified stage,
    so the following call returns the next one.
    """
    lead_record = _open_lead_engine(db).next_lead()
    if lead_record is None:
        return None

    lead = db.get(Lead, lead_record.id)
    lead.stage = LeadStage.qualified
    lead.priority = lead_record.priority
    lead.next_follow_up = lead_record.next_follow_up
    db.commit()
    logger.info("🎯 Lead %s handed out (priority %d)", lead.id, lead_record.priority)
    return lead_record


# ---------------------------------------------------------------------------
# DASHBOARD
# ---------------------------------------------------------------------------

def appointment_analytics(db: Session, days: int, now: Optional[datetime.datetime] = None) -> Dict:
    window = WindowedMetrics(days, now=now)
    rows = (
        db.query(Appointment)
        .filter(Appointment.appointment_date >= window.window_start)
        .all()
    )
    window.add_samples(appointment_to_sample(a) for a in rows)
    return window.summary()


# ---------------------------------------------------------------------------
# SEED DATA
# ---------------------------------------------------------------------------

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")

DEFAULT_DOCTORS = [
    # name, specializations, rating, experience, fee, city, hours
    ("Dr. Rajesh Kumar", "Cardiology,Internal Medicine", 4.8, 15, 1500, "Mumbai", ("09:00", "17:00")),
    ("Dr. Priya Sharma", "Dermatology,Cosmetology", 4.7, 12, 1200, "Delhi", ("10:00", "18:00")),
    ("Dr. Amit Patel", "Orthopedics", 4.6, 18, 1000, "Ahmedabad", ("09:00", "15:00")),
    ("Dr. Sunita Reddy", "Pediatrics", 4.9, 10, 800, "Hyderabad", ("08:00", "14:00")),
    ("Dr. Vikram Singh", "Neurology", 4.5, 20, 1800, "Jaipur", ("11:00", "19:00")),
    ("Dr. Anjali Mehta", "Psychiatry", 4.4, 8, 1100, "Pune", ("12:00", "20:00")),
    ("Dr. Arjun Nair", "General Medicine", 4.2, 5, 500, "Kochi", ("09:00", "17:00")),
]


def seed_default_doctors(db: Session) -> int:
    """Insert the default roster when the doctor table is empty. Returns rows added."""
    doctor_count = db.query(Doctor).count()
    if doctor_count:
        logger.info("🩻 %d doctors already exist in the system.", doctor_count)
        return 0

    logger.info("🩺 No doctors found. Seeding default doctors...")
    for name, specs, rating, experience, fee, city, (start, end) in DEFAULT_DOCTORS:
        doctor = Doctor(
            name=name,
            specializations=specs,
            rating=rating,
            experience_years=experience,
            consultation_fee=fee,
            city=city,
        )
        doctor.slots = [
            DoctorSlot(day_of_week=day, start_time=start, end_time=end, slot_duration_minutes=30)
            for day in WEEKDAYS
        ]
        db.add(doctor)
    db.commit()
    logger.info("✅ Default doctors have been seeded.")
    return len(DEFAULT_DOCTORS)
