"""
lead_queue.py
=============
Lead triage:
 - Derives an integer priority (0-10) for every lead
 - Keeps leads in a binary heap so the most urgent one is served first
 - Suggests when the sales team should follow up
"""

import datetime
import heapq
import logging
import math
from typing import List, Optional

from .models import LeadKind, LeadSource
from .schemas import LeadRecord, QueueStatus

logger = logging.getLogger(__name__)

MAX_PRIORITY = 10

KIND_SCORES = {
    LeadKind.doctor: 3,
    LeadKind.patient: 2,
}

SOURCE_SCORES = {
    LeadSource.referral: 4,
    LeadSource.advertisement: 3,
    LeadSource.website: 2,
    LeadSource.social_media: 1,
}

URGENT_KEYWORDS = ("emergency", "chest pain", "breathing difficulty", "severe pain")
HIGH_DEMAND_SPECIALIZATIONS = ("cardiology", "neurology", "oncology", "psychiatry")


def compute_lead_priority(lead: LeadRecord) -> int:
    """
    Sum of kind, source, urgent-condition, high-demand-specialization and
    engagement bonuses, floored and clamped to [0, 10].
    """
    score = 0.0
    score += KIND_SCORES.get(lead.kind, 0)
    score += SOURCE_SCORES.get(lead.source, 0)

    condition = (lead.medical_condition or "").lower()
    if any(keyword in condition for keyword in URGENT_KEYWORDS):
        score += 5

    specialization = (lead.specialization or "").lower()
    if any(s in specialization for s in HIGH_DEMAND_SPECIALIZATIONS):
        score += 3

    score += min(lead.interaction_count * 0.5, 2)

    return min(max(math.floor(score), 0), MAX_PRIORITY)


def suggest_follow_up(priority: int, now: Optional[datetime.datetime] = None) -> datetime.datetime:
    """Hot leads get a call within 30 minutes, cold ones within a day."""
    now = now or datetime.datetime.utcnow()
    if priority >= 8:
        return now + datetime.timedelta(minutes=30)
    if priority >= 6:
        return now + datetime.timedelta(hours=2)
    if priority >= 4:
        return now + datetime.timedelta(hours=4)
    return now + datetime.timedelta(hours=24)


# ---------------------------------------------------------------------------
# PRIORITY QUEUE IMPLEMENTATION
# ---------------------------------------------------------------------------

class LeadPriorityQueue:
    """
    Max-heap of leads keyed by ``lead.priority``.
    Equal priorities are served first-in first-out.
    """
    def __init__(self):
        self._heap = []      # heap of (-priority, counter, lead)
        self._counter = 0

    def enqueue(self, lead: LeadRecord):
        self._counter += 1
        heapq.heappush(self._heap, (-lead.priority, self._counter, lead))

    def dequeue(self) -> Optional[LeadRecord]:
        if not self._heap:
            return None
        _, _, lead = heapq.heappop(self._heap)
        return lead

    def peek(self) -> Optional[LeadRecord]:
        if not self._heap:
            return None
        return self._heap[0][2]

    def size(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap

    def items(self) -> List[LeadRecord]:
        """Snapshot of the queued leads in heap order (not dequeue order)."""
        return [entry[2] for entry in self._heap]


# ---------------------------------------------------------------------------
# QUALIFICATION ENGINE
# ---------------------------------------------------------------------------

class LeadQualificationEngine:
    """Scores incoming leads and hands them out most urgent first."""

    def __init__(self):
        self.queue = LeadPriorityQueue()

    def add_lead(self, lead: LeadRecord, now: Optional[datetime.datetime] = None) -> LeadRecord:
        now = now or datetime.datetime.utcnow()
        priority = compute_lead_priority(lead)
        qualified = lead.model_copy(update={
            "priority": priority,
            "qualified_at": now,
            "next_follow_up": suggest_follow_up(priority, now),
        })
        self.queue.enqueue(qualified)
        logger.debug("Lead %s queued with priority %d", qualified.id, priority)
        return qualified

    def next_lead(self) -> Optional[LeadRecord]:
        return self.queue.dequeue()

    def drain(self) -> List[LeadRecord]:
        """Dequeue every lead, most urgent first."""
        leads = []
        while not self.queue.is_empty():
            leads.append(self.queue.dequeue())
        return leads

    def queue_status(self) -> QueueStatus:
        leads = self.queue.items()
        if not leads:
            return QueueStatus()
        priorities = [lead.priority for lead in leads]
        return QueueStatus(
            total_leads=len(leads),
            high_priority_count=sum(1 for p in priorities if p >= 8),
            medium_priority_count=sum(1 for p in priorities if 6 <= p < 8),
            low_priority_count=sum(1 for p in priorities if p < 6),
            average_priority=round(sum(priorities) / len(priorities), 1),
        )

    def rescore(self, now: Optional[datetime.datetime] = None) -> QueueStatus:
        """Recompute every queued lead's priority and rebuild the heap."""
        for lead in self.drain():
            self.add_lead(lead, now)
        return self.queue_status()
