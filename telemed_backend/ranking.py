"""
ranking.py
==========
Ordered index over doctor records.

Doctors are kept in a plain list sorted by (rating desc, experience desc).
Equal keys keep insertion order, which makes the order total and stable.
"""

import bisect
from typing import Iterable, List

from .schemas import DoctorRecord


def ranking_key(doctor: DoctorRecord):
    return (-doctor.rating, -doctor.experience_years)


class DoctorRankingIndex:
    """Sorted doctor index supporting top-N and specialization queries."""

    def __init__(self):
        self._doctors: List[DoctorRecord] = []

    @classmethod
    def from_doctors(cls, doctors: Iterable[DoctorRecord]) -> "DoctorRankingIndex":
        index = cls()
        for doctor in doctors:
            index.insert(doctor)
        return index

    def __len__(self) -> int:
        return len(self._doctors)

    def insert(self, doctor: DoctorRecord):
        # insort_right places a new doctor after existing equal keys
        bisect.insort_right(self._doctors, doctor, key=ranking_key)

    def range_by_specialization(self, specialization: str, min_rating: float = 0) -> List[DoctorRecord]:
        """All doctors listing ``specialization`` with rating >= ``min_rating``."""
        return [
            d for d in self._doctors
            if d.has_specialization(specialization) and d.rating >= min_rating
        ]

    def top_n(self, n: int = 10) -> List[DoctorRecord]:
        if n <= 0:
            return []
        return self._doctors[:n]
