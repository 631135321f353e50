"""
matching.py
===========
Weighted doctor/booking-request matching.

Each doctor receives a score in [0, 100] built from six weighted terms,
each term itself scaled to [0, 100]:

    specialization 30%, rating 25%, experience 15%,
    availability 15%, fee 10%, location 5%
"""

import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from .schemas import DoctorRecord, BookingRequest, TimeSlot

WEIGHTS = {
    "specialization": 0.30,
    "rating": 0.25,
    "experience": 0.15,
    "availability": 0.15,
    "fee": 0.10,
    "location": 0.05,
}

AVAILABLE_AT_TIME = 100
AVAILABLE_OTHER_TIME = 20
NO_AVAILABILITY = 0

WORKDAY_START_MINUTES = 9 * 60
WORKDAY_END_MINUTES = 17 * 60
SLOT_STEP_MINUTES = 30

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _minutes(hhmm: str) -> Optional[int]:
    """Parse "HH:MM" into minutes since midnight, None if malformed."""
    try:
        hours, minutes = hhmm.split(":")
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError):
        return None


def _hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class AppointmentMatcher:
    """
    Stateless scorer. A single module-level instance is shared by the
    request handlers.
    """

    def score(self, doctor: DoctorRecord, request: BookingRequest) -> float:
        total = 0.0

        if doctor.has_specialization(request.specialization):
            total += WEIGHTS["specialization"] * 100

        total += WEIGHTS["rating"] * min(doctor.rating * 20, 100)
        total += WEIGHTS["experience"] * min(doctor.experience_years * 5, 100)
        total += WEIGHTS["availability"] * self.check_availability(doctor, request.preferred_time)
        total += WEIGHTS["fee"] * self._fee_component(doctor.consultation_fee, request.max_fee)
        total += WEIGHTS["location"] * self._location_component(doctor.city, request.location)

        return round(min(max(total, 0.0), 100.0), 2)

    @staticmethod
    def _fee_component(fee: float, max_fee: Optional[float]) -> float:
        # Without a cap the doctor's own fee is the cap, which scores 0
        cap = fee if max_fee is None else max_fee
        if cap <= 0 or fee > cap:
            return 0.0
        return (cap - fee) / cap * 100

    @staticmethod
    def _location_component(city: Optional[str], location: Optional[str]) -> float:
        if not city or not location:
            return 0.0
        return 100.0 if city.strip().lower() == location.strip().lower() else 0.0

    def check_availability(self, doctor: DoctorRecord, when: Optional[datetime.datetime]) -> int:
        """
        100 if ``when`` falls inside one of the doctor's weekly slots,
        20 if the doctor has slots but not at that time, 0 without slots.
        """
        if not doctor.weekly_availability:
            return NO_AVAILABILITY
        if when is None:
            return AVAILABLE_OTHER_TIME

        day_name = DAY_NAMES[when.weekday()]
        requested = when.hour * 60 + when.minute

        for slot in doctor.weekly_availability:
            if slot.day_of_week != day_name:
                continue
            start, end = _minutes(slot.start_time), _minutes(slot.end_time)
            if start is None or end is None:
                continue
            if start <= requested < end:
                return AVAILABLE_AT_TIME

        return AVAILABLE_OTHER_TIME

    def find_best_matches(
        self,
        request: BookingRequest,
        doctors: Iterable[DoctorRecord],
        limit: int = 5,
    ) -> List[Tuple[DoctorRecord, float]]:
        """Top ``limit`` (doctor, score) pairs, best first; ties keep input order."""
        scored = [(doctor, self.score(doctor, request)) for doctor in doctors]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    def find_optimal_slots(
        self,
        day: datetime.date,
        duration: int = 30,
        booked: Sequence[datetime.datetime] = (),
    ) -> List[TimeSlot]:
        """
        Candidate consultation slots within working hours on ``day``.
        A slot is unavailable when an existing booking starts inside it.
        """
        taken = [
            b.hour * 60 + b.minute
            for b in booked
            if b.date() == day
        ]

        slots = []
        start = WORKDAY_START_MINUTES
        while start < WORKDAY_END_MINUTES - duration:
            end = start + duration
            slots.append(TimeSlot(
                start_time=_hhmm(start),
                end_time=_hhmm(end),
                available=not any(start <= t < end for t in taken),
            ))
            start += SLOT_STEP_MINUTES
        return slots


# Global matcher instance
matcher = AppointmentMatcher()
