"""
test_matching.py
================
Unit tests for doctor/booking-request matching.
"""

import sys, os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import datetime

import pytest

from telemed_backend.matching import AppointmentMatcher
from telemed_backend.schemas import AvailabilitySlot, BookingRequest, DoctorRecord

# 2024-01-01 is a Monday
MONDAY_10AM = datetime.datetime(2024, 1, 1, 10, 0)
MONDAY_8PM = datetime.datetime(2024, 1, 1, 20, 0)


def _weekday_slots(start="09:00", end="17:00"):
    return [
        AvailabilitySlot(day_of_week=day, start_time=start, end_time=end)
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    ]


@pytest.fixture
def matcher():
    return AppointmentMatcher()


@pytest.fixture
def cardiologist():
    return DoctorRecord(
        id=1,
        name="Dr. Rajesh Kumar",
        specializations=["Cardiology", "Internal Medicine"],
        rating=4.8,
        experience_years=15,
        consultation_fee=1500,
        city="Mumbai",
        weekly_availability=_weekday_slots(),
    )


def test_score_weighted_terms(matcher, cardiologist):
    """
    ✅ specialization 30 + rating 24 + experience 11.25 + availability 15 + fee 2.5
    """
    request = BookingRequest(specialization="Cardiology", preferred_time=MONDAY_10AM, max_fee=2000)
    assert matcher.score(cardiologist, request) == pytest.approx(82.75)


def test_location_match_adds_five_points(matcher, cardiologist):
    request = BookingRequest(
        specialization="Cardiology", preferred_time=MONDAY_10AM, max_fee=2000, location="mumbai"
    )
    assert matcher.score(cardiologist, request) == pytest.approx(87.75)


def test_availability_levels(matcher, cardiologist):
    assert matcher.check_availability(cardiologist, MONDAY_10AM) == 100
    assert matcher.check_availability(cardiologist, MONDAY_8PM) == 20
    assert matcher.check_availability(cardiologist, None) == 20

    no_slots = cardiologist.model_copy(update={"weekly_availability": []})
    assert matcher.check_availability(no_slots, MONDAY_10AM) == 0


def test_slot_end_is_exclusive(matcher, cardiologist):
    five_pm = datetime.datetime(2024, 1, 1, 17, 0)
    assert matcher.check_availability(cardiologist, five_pm) == 20


def test_fee_over_cap_and_zero_cap(matcher, cardiologist):
    """
    ✅ A fee above the cap and a zero cap both contribute nothing.
    """
    over = BookingRequest(specialization="Cardiology", preferred_time=MONDAY_10AM, max_fee=1000)
    zero = BookingRequest(specialization="Cardiology", preferred_time=MONDAY_10AM, max_fee=0)
    no_cap = BookingRequest(specialization="Cardiology", preferred_time=MONDAY_10AM)

    assert matcher.score(cardiologist, over) == pytest.approx(80.25)
    assert matcher.score(cardiologist, zero) == pytest.approx(80.25)
    assert matcher.score(cardiologist, no_cap) == pytest.approx(80.25)


def test_free_doctor_without_cap_does_not_divide_by_zero(matcher):
    doctor = DoctorRecord(id=2, consultation_fee=0)
    request = BookingRequest(specialization="Dermatology")
    assert matcher.score(doctor, request) == 0.0


def test_score_bounds_and_determinism(matcher):
    request = BookingRequest(
        specialization="Neurology", preferred_time=MONDAY_10AM, max_fee=5000, location="Jaipur"
    )
    best = DoctorRecord(
        id=3,
        specializations=["Neurology"],
        rating=5,
        experience_years=40,
        consultation_fee=0,
        city="Jaipur",
        weekly_availability=_weekday_slots(),
    )
    first = matcher.score(best, request)
    assert first == pytest.approx(100.0)
    assert matcher.score(best, request) == first

    worst = DoctorRecord(id=4, consultation_fee=6000)
    assert matcher.score(worst, request) == 0.0


def test_find_best_matches_top_five_stable(matcher):
    request = BookingRequest(specialization="Cardiology", preferred_time=MONDAY_10AM, max_fee=2000)
    doctors = [
        DoctorRecord(id=i, specializations=["Cardiology"], rating=4.0, experience_years=10)
        for i in range(4)
    ] + [
        DoctorRecord(id=10 + i, specializations=["Dermatology"], rating=3.0) for i in range(3)
    ] + [
        DoctorRecord(id=99, specializations=["Cardiology"], rating=5.0, experience_years=20)
    ]

    matches = matcher.find_best_matches(request, doctors)
    assert len(matches) == 5
    assert matches[0][0].id == 99
    # Equal scores keep input order
    assert [d.id for d, _ in matches[1:]] == [0, 1, 2, 3]

    scores = [s for _, s in matches]
    assert scores == sorted(scores, reverse=True)


def test_find_best_matches_empty(matcher):
    assert matcher.find_best_matches(BookingRequest(specialization="x"), []) == []


def test_find_optimal_slots(matcher):
    day = datetime.date(2024, 1, 2)
    booked = [datetime.datetime(2024, 1, 2, 9, 45), datetime.datetime(2024, 1, 3, 11, 0)]

    slots = matcher.find_optimal_slots(day, duration=30, booked=booked)

    assert len(slots) == 15
    assert (slots[0].start_time, slots[0].end_time) == ("09:00", "09:30")
    assert (slots[-1].start_time, slots[-1].end_time) == ("16:00", "16:30")
    assert [s.start_time for s in slots if not s.available] == ["09:30"]
