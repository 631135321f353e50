"""
main.py
========
FastAPI entry point for the telemedicine booking backend.
It:
 - Initializes the database and seeds default doctors if none exist.
 - Exposes doctor ranking, doctor matching and slot lookup endpoints.
 - Exposes lead capture and lead triage endpoints.
 - Exposes appointment analytics for the admin and doctor dashboards.
"""

import datetime
import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from . import services
from .config import CORS_ORIGINS, DEFAULT_DOCTOR_ANALYTICS_DAYS, DEFAULT_WINDOW_DAYS, LOG_LEVEL
from .db import init_db, get_db, session_scope
from .models import Base, Doctor
from .schemas import (
    BookingRequest, DoctorMatch, DoctorRecord, LeadCreate, LeadRecord,
    LeadResponse, TimeSlot,
)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# APP INITIALIZATION
# ---------------------------------------------------------------------------

app = FastAPI(title="Telemedicine Booking Backend", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# APP STARTUP EVENT
# ---------------------------------------------------------------------------
@app.on_event("startup")
def startup_event():
    """
    Called when FastAPI starts.
    Creates missing tables and seeds the default doctor roster.
    """
    logger.info("🚀 Starting Telemedicine Booking Backend...")
    init_db(Base)

    with session_scope() as db:
        services.seed_default_doctors(db)


def _get_doctor_or_404(db: Session, doctor_id: int) -> Doctor:
    doctor = db.get(Doctor, doctor_id)
    if not doctor:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return doctor


# ---------------------------------------------------------------------------
# DOCTOR ENDPOINTS
# ---------------------------------------------------------------------------

@app.get("/api/doctors/top", response_model=List[DoctorRecord])
def api_top_doctors(n: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    """Highest ranked doctors by rating, then experience."""
    return services.top_doctors(db, n)


@app.get("/api/doctors/search", response_model=List[DoctorRecord])
def api_search_doctors(
    specialization: str = Query(..., min_length=1),
    min_rating: float = Query(0, ge=0, le=5),
    db: Session = Depends(get_db),
):
    """Doctors practising ``specialization`` with at least ``min_rating``."""
    return services.search_doctors(db, specialization, min_rating)


@app.get("/api/doctors/{doctor_id}/available-slots", response_model=List[TimeSlot])
def api_available_slots(
    doctor_id: int,
    date: datetime.date = Query(...),
    db: Session = Depends(get_db),
):
    _get_doctor_or_404(db, doctor_id)
    return services.available_slots(db, doctor_id, date)


@app.get("/api/doctors/{doctor_id}/analytics")
def api_doctor_analytics(
    doctor_id: int,
    days: int = Query(DEFAULT_DOCTOR_ANALYTICS_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
):
    """Peak hours, busy-period clusters and workload balance for one doctor."""
    _get_doctor_or_404(db, doctor_id)
    return services.doctor_analytics(db, doctor_id, days)


# ---------------------------------------------------------------------------
# APPOINTMENT ENDPOINTS
# ---------------------------------------------------------------------------

@app.post("/api/appointments/recommend-doctors", response_model=List[DoctorMatch])
def api_recommend_doctors(req: BookingRequest, db: Session = Depends(get_db)):
    """
    Rank all doctors against a booking request.

    - Scores specialization, rating, experience, availability, fee and location
    - Returns at most five matches, best first
    """
    return services.recommend_doctors(db, req)


# ---------------------------------------------------------------------------
# LEAD ENDPOINTS
# ---------------------------------------------------------------------------

@app.post("/api/leads", response_model=LeadResponse, status_code=201)
def api_capture_lead(req: LeadCreate, db: Session = Depends(get_db)):
    """
    Capture a new lead.

    - Rejects leads whose email or phone is already known (409)
    - Returns the computed priority and suggested follow-up time
    """
    try:
        return services.capture_lead(db, req)
    except services.DuplicateLeadError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/api/leads/queue")
def api_lead_queue(db: Session = Depends(get_db)):
    """Open leads in the order they would be handed out."""
    return services.lead_queue(db)


@app.get("/api/leads/next-qualified", response_model=LeadRecord)
def api_next_qualified_lead(db: Session = Depends(get_db)):
    lead = services.next_qualified_lead(db)
    if lead is None:
        raise HTTPException(status_code=404, detail="No leads in queue")
    return lead


# ---------------------------------------------------------------------------
# DASHBOARD ENDPOINTS
# ---------------------------------------------------------------------------

@app.get("/api/dashboard/appointment-analytics")
def api_appointment_analytics(
    days: int = Query(DEFAULT_WINDOW_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
):
    """Trailing-window appointment, revenue, acquisition and utilization metrics."""
    return {"success": True, "analytics": services.appointment_analytics(db, days)}


# ---------------------------------------------------------------------------
# ROOT ENDPOINT
# ---------------------------------------------------------------------------

@app.get("/")
def root():
    """Basic health check endpoint."""
    return {"message": "Telemedicine Booking Backend is running!"}
