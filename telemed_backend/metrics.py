"""
metrics.py
==========
Trailing-window appointment analytics for the admin and doctor dashboards.

 - WindowedMetrics: counts, rates, revenue and trend over the last N days
 - AppointmentPatternAnalyzer: peak hours, busy-period clusters and
   per-doctor workload balance

All results are plain dicts ready for JSON serialization. Empty or
single-sample inputs yield zero-valued results.
"""

import datetime
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from .models import AppointmentStatus, PaymentStatus
from .schemas import AppointmentSample


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _is_paid_revenue(sample: AppointmentSample) -> bool:
    return (
        sample.status == AppointmentStatus.completed
        and sample.payment_status == PaymentStatus.paid
    )


def linear_trend(values: List[float]) -> float:
    """Least-squares slope of ``values`` against their index."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * y for i, y in enumerate(values))
    sum_xx = sum(i * i for i in range(n))
    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denominator


class WindowedMetrics:
    """
    Aggregates appointment samples falling in ``[now - window_days, now]``,
    both ends inclusive. Older and future samples are dropped on insert.
    """

    def __init__(self, window_days: int = 7, now: Optional[datetime.datetime] = None):
        self.window_days = max(int(window_days), 1)
        self.now = now or datetime.datetime.utcnow()
        self._samples: List[AppointmentSample] = []

    @property
    def window_start(self) -> datetime.datetime:
        return self.now - datetime.timedelta(days=self.window_days)

    @property
    def samples(self) -> List[AppointmentSample]:
        return list(self._samples)

    def add_sample(self, sample: AppointmentSample):
        self._samples.append(sample)
        self._evict_outside_window()

    def add_samples(self, samples: Iterable[AppointmentSample]):
        self._samples.extend(samples)
        self._evict_outside_window()

    def _evict_outside_window(self):
        cutoff = self.window_start
        self._samples = [s for s in self._samples if cutoff <= s.timestamp <= self.now]

    # -----------------------------------------------------------------------
    # Appointment counts
    # -----------------------------------------------------------------------

    def appointment_metrics(self) -> Dict:
        total = len(self._samples)
        completed = sum(1 for s in self._samples if s.status == AppointmentStatus.completed)
        cancelled = sum(1 for s in self._samples if s.status == AppointmentStatus.cancelled)
        no_show = sum(1 for s in self._samples if s.status == AppointmentStatus.no_show)

        return {
            "total": total,
            "completed": completed,
            "cancelled": cancelled,
            "no_show": no_show,
            "completion_rate": _percent(completed, total),
            "cancellation_rate": _percent(cancelled, total),
            "no_show_rate": _percent(no_show, total),
        }

    # -----------------------------------------------------------------------
    # Revenue
    # -----------------------------------------------------------------------

    def daily_revenue(self) -> List[Dict]:
        """
        Revenue per calendar day for the last ``window_days`` days ending
        today, oldest first. The window start falls on the calendar day before
        the first entry, so revenue from that partial day counts towards
        ``total_revenue`` but has no entry here.
        """
        today = self.now.date()
        daily = OrderedDict()
        for offset in range(self.window_days - 1, -1, -1):
            daily[today - datetime.timedelta(days=offset)] = 0.0

        for sample in self._samples:
            if not _is_paid_revenue(sample):
                continue
            day = sample.timestamp.date()
            if day in daily:
                daily[day] += sample.fee

        return [{"date": day.isoformat(), "revenue": revenue} for day, revenue in daily.items()]

    def revenue_metrics(self) -> Dict:
        total_revenue = sum(s.fee for s in self._samples if _is_paid_revenue(s))
        daily = self.daily_revenue()
        return {
            "total_revenue": total_revenue,
            "avg_daily_revenue": round(total_revenue / self.window_days, 2),
            "daily_revenue": daily,
            "trend": linear_trend([d["revenue"] for d in daily]),
        }

    # -----------------------------------------------------------------------
    # Patients and doctors
    # -----------------------------------------------------------------------

    def patient_acquisition_metrics(self) -> Dict:
        patients = {s.patient_id for s in self._samples if s.patient_id is not None}
        new_patients = {
            s.patient_id for s in self._samples
            if s.is_first_appointment and s.patient_id is not None
        }
        return {
            "total_unique_patients": len(patients),
            "new_patients": len(new_patients),
            "return_patients": len(patients) - len(new_patients),
            "acquisition_rate": _percent(len(new_patients), len(patients)),
        }

    def doctor_utilization_metrics(self) -> List[Dict]:
        stats: Dict = OrderedDict()
        for sample in self._samples:
            entry = stats.setdefault(sample.doctor_id, {
                "total": 0, "completed": 0, "revenue": 0.0, "ratings": [],
            })
            entry["total"] += 1
            if sample.status == AppointmentStatus.completed:
                entry["completed"] += 1
                entry["revenue"] += sample.fee
                if sample.patient_rating is not None:
                    entry["ratings"].append(sample.patient_rating)

        results = []
        for doctor_id, entry in stats.items():
            ratings = entry.pop("ratings")
            results.append({
                "doctor_id": doctor_id,
                **entry,
                "avg_rating": round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
                "utilization_rate": _percent(entry["completed"], entry["total"]),
            })
        return results

    def summary(self) -> Dict:
        return {
            "time_window": f"{self.window_days} days",
            "appointments": self.appointment_metrics(),
            "revenue": self.revenue_metrics(),
            "patient_acquisition": self.patient_acquisition_metrics(),
            "doctor_utilization": self.doctor_utilization_metrics(),
        }


class AppointmentPatternAnalyzer:
    """Two-pointer and fixed-window scans over time-sorted appointments."""

    def __init__(self, samples: Iterable[AppointmentSample] = ()):
        self.samples = sorted(samples, key=lambda s: s.timestamp)

    def find_peak_hours(self, window_hours: int = 3) -> Dict:
        """
        Busiest run of ``window_hours`` consecutive hours of the day.
        Ties go to the earliest start hour.
        """
        window_hours = min(max(int(window_hours), 1), 24)
        hour_counts = [0] * 24
        for sample in self.samples:
            hour_counts[sample.timestamp.hour] += 1

        current = sum(hour_counts[:window_hours])
        best_sum, best_start = current, 0
        for start in range(1, 24 - window_hours + 1):
            current += hour_counts[start + window_hours - 1] - hour_counts[start - 1]
            if current > best_sum:
                best_sum, best_start = current, start

        return {
            "peak_window": {
                "start_hour": best_start,
                "end_hour": best_start + window_hours - 1,
                "appointment_count": best_sum,
            },
            "hourly_distribution": [
                {"hour": hour, "count": count} for hour, count in enumerate(hour_counts)
            ],
        }

    def find_clusters(self, max_gap_minutes: float = 30) -> List[Dict]:
        """
        Maximal runs of appointments whose consecutive gaps stay within
        ``max_gap_minutes``, largest first.
        """
        clusters = []
        left = 0
        while left < len(self.samples):
            right = left
            while right + 1 < len(self.samples):
                gap = self.samples[right + 1].timestamp - self.samples[right].timestamp
                if gap.total_seconds() / 60 > max_gap_minutes:
                    break
                right += 1

            start = self.samples[left].timestamp
            end = self.samples[right].timestamp
            clusters.append({
                "start_time": start,
                "end_time": end,
                "appointment_count": right - left + 1,
                "appointment_ids": [s.id for s in self.samples[left:right + 1]],
                "duration_minutes": (end - start).total_seconds() / 60,
            })
            left = right + 1

        clusters.sort(key=lambda c: c["appointment_count"], reverse=True)
        return clusters

    def analyze_workload(self) -> List[Dict]:
        by_doctor: Dict = OrderedDict()
        for sample in self.samples:
            by_doctor.setdefault(sample.doctor_id, []).append(sample)

        stats = []
        for doctor_id, appointments in by_doctor.items():
            gaps = [
                (b.timestamp - a.timestamp).total_seconds() / 60
                for a, b in zip(appointments, appointments[1:])
            ]
            avg_gap = sum(gaps) / len(gaps) if gaps else 0.0
            stats.append({
                "doctor_id": doctor_id,
                "appointment_count": len(appointments),
                "avg_gap_minutes": round(avg_gap, 2),
                "min_gap_minutes": min(gaps) if gaps else 0.0,
                "max_gap_minutes": max(gaps) if gaps else 0.0,
                "is_overloaded": bool(gaps) and avg_gap < 15,
                "is_underutilized": bool(gaps) and avg_gap > 120,
            })

        stats.sort(key=lambda s: s["appointment_count"], reverse=True)
        return stats
