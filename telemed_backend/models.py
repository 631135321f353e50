"""
models.py
=========
SQLAlchemy ORM models for the telemedicine booking backend.
Contains tables for:
 - Doctor (+ weekly availability slots)
 - Lead (+ follow-up interactions)
 - Appointment
"""

from sqlalchemy import Boolean, Column, Integer, Float, String, DateTime, Text, ForeignKey, Enum
from sqlalchemy.orm import declarative_base, relationship
import datetime
import enum

# SQLAlchemy Base class
Base = declarative_base()

# ---------------------------------------------------------------------------
# ENUM DEFINITIONS
# ---------------------------------------------------------------------------

class UrgencyEnum(str, enum.Enum):
    """Urgency a patient attaches to a booking request."""
    low = "low"
    medium = "medium"
    high = "high"
    emergency = "emergency"


class LeadKind(str, enum.Enum):
    """Whether a lead is a prospective patient or a prospective doctor."""
    patient = "patient"
    doctor = "doctor"


class LeadSource(str, enum.Enum):
    """Acquisition channel of a lead."""
    website = "website"
    referral = "referral"
    social_media = "social_media"
    advertisement = "advertisement"


class LeadStage(str, enum.Enum):
    prospect = "prospect"
    qualified = "qualified"
    converted = "converted"
    lost = "lost"


class AppointmentStatus(str, enum.Enum):
    """Lifecycle of a booked consultation."""
    scheduled = "scheduled"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"


# ---------------------------------------------------------------------------
# TABLE DEFINITIONS
# ---------------------------------------------------------------------------

class Doctor(Base):
    """Stores doctor profile used for ranking and matching."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    # Comma separated, e.g. "Cardiology,Internal Medicine"
    specializations = Column(String, nullable=True)
    rating = Column(Float, default=0.0)
    experience_years = Column(Integer, default=0)
    consultation_fee = Column(Float, default=0.0)
    city = Column(String, nullable=True)

    slots = relationship("DoctorSlot", back_populates="doctor", cascade="all, delete-orphan")


class DoctorSlot(Base):
    """One weekly availability window of a doctor."""
    __tablename__ = "doctor_slots"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    day_of_week = Column(String, nullable=False)  # "monday" .. "sunday"
    start_time = Column(String, nullable=False)   # "HH:MM"
    end_time = Column(String, nullable=False)
    slot_duration_minutes = Column(Integer, default=30)

    doctor = relationship("Doctor", back_populates="slots")


class Lead(Base):
    """Prospective patient or doctor captured before registration."""
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    phone = Column(String, nullable=False)
    kind = Column(Enum(LeadKind), nullable=False)
    source = Column(Enum(LeadSource), default=LeadSource.website)
    medical_condition = Column(Text, nullable=True)
    specialization = Column(String, nullable=True)
    # Derived, recomputed on every read; stored for listing only
    priority = Column(Integer, default=0)
    stage = Column(Enum(LeadStage), default=LeadStage.prospect)
    next_follow_up = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    interactions = relationship("LeadInteraction", back_populates="lead", cascade="all, delete-orphan")


class LeadInteraction(Base):
    """A call, email or meeting with a lead."""
    __tablename__ = "lead_interactions"

    id = Column(Integer, primary_key=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False)
    channel = Column(String, default="call")
    outcome = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    lead = relationship("Lead", back_populates="interactions")


class Appointment(Base):
    """Tracks a booked consultation and its payment."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id = Column(Integer, nullable=False)
    appointment_date = Column(DateTime, nullable=False)
    status = Column(Enum(AppointmentStatus), default=AppointmentStatus.scheduled)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.pending)
    fee = Column(Float, default=0.0)
    is_first_appointment = Column(Boolean, default=False)
    patient_rating = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    doctor = relationship("Doctor")
