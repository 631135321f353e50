"""
duplicates.py
=============
Duplicate detection for captured leads.

Leads are indexed by normalized email, phone digits and full name.
An email or phone hit blocks the lead; a name hit is only reported.
"""

import re
from typing import Dict, List, Optional

from .schemas import LeadRecord

_NON_LETTERS = re.compile(r"[^a-z\s]")
_SPACES = re.compile(r"\s+")
_NON_DIGITS = re.compile(r"\D")


def normalize_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    full = f"{first_name or ''} {last_name or ''}".lower()
    return _SPACES.sub(" ", _NON_LETTERS.sub("", full)).strip()


def normalize_phone(phone: Optional[str]) -> str:
    return _NON_DIGITS.sub("", phone or "")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


class DuplicateDetector:

    def __init__(self):
        self._by_email: Dict[str, LeadRecord] = {}
        self._by_phone: Dict[str, LeadRecord] = {}
        self._by_name: Dict[str, LeadRecord] = {}

    def check(self, lead: LeadRecord) -> Dict:
        result = {"email": None, "phone": None, "name": None, "is_duplicate": False}

        email = normalize_email(lead.email)
        if email and email in self._by_email:
            result["email"] = self._by_email[email]
            result["is_duplicate"] = True

        phone = normalize_phone(lead.phone)
        if phone and phone in self._by_phone:
            result["phone"] = self._by_phone[phone]
            result["is_duplicate"] = True

        name = normalize_name(lead.first_name, lead.last_name)
        if lead.first_name and lead.last_name and name in self._by_name:
            result["name"] = self._by_name[name]

        return result

    def add(self, lead: LeadRecord) -> Dict:
        duplicates = self.check(lead)
        if duplicates["is_duplicate"]:
            return {"success": False, "duplicates": duplicates}

        email = normalize_email(lead.email)
        if email:
            self._by_email[email] = lead
        phone = normalize_phone(lead.phone)
        if phone:
            self._by_phone[phone] = lead
        if lead.first_name and lead.last_name:
            self._by_name[normalize_name(lead.first_name, lead.last_name)] = lead

        return {"success": True, "duplicates": duplicates}

    def remove(self, lead: LeadRecord):
        self._by_email.pop(normalize_email(lead.email), None)
        self._by_phone.pop(normalize_phone(lead.phone), None)
        self._by_name.pop(normalize_name(lead.first_name, lead.last_name), None)

    def find_similar_names(self, lead: LeadRecord, max_distance: int = 2) -> List[Dict]:
        """Known leads whose name is close to, but not exactly, ``lead``'s name."""
        target = normalize_name(lead.first_name, lead.last_name)
        if not target:
            return []

        similar = []
        for name, other in self._by_name.items():
            distance = levenshtein(target, name)
            if 0 < distance <= max_distance:
                similar.append({
                    "lead": other,
                    "similarity": 1 - distance / max(len(target), len(name)),
                })
        similar.sort(key=lambda s: s["similarity"], reverse=True)
        return similar

    def stats(self) -> Dict[str, int]:
        return {
            "total_emails": len(self._by_email),
            "total_phones": len(self._by_phone),
            "total_names": len(self._by_name),
        }
