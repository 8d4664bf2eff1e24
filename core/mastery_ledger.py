"""
Mastery Ledger - running totals per (subject, level, skill) plus an event log.

Features:
    - Attempts / correct / streak per skill, fed by parsed tutor replies
    - Append-only event log, capped to the most recent MAX_EVENTS (FIFO)
    - Trailing-window rollup with accuracy percentages
    - Weakest-skill ranking
"""

import logging
import time
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Tuple

from .reply_parser import Verdict

logger = logging.getLogger(__name__)

MAX_EVENTS = 500
DEFAULT_WINDOW_DAYS = 7
SECONDS_PER_DAY = 86400

Key = Tuple[str, str, str]


@dataclass
class MasteryRecord:
    """Running totals for one skill at one subject/level."""
    subject: str
    level: str
    skill: str
    correct_count: int = 0
    total_count: int = 0
    last_updated_at: float = 0.0  # Unix timestamp
    current_streak: int = 0

    @property
    def key(self) -> Key:
        return (self.subject, self.level, self.skill)


@dataclass
class Event:
    """One skill observation."""
    timestamp: float
    subject: str
    level: str
    skill: str
    correct: bool


@dataclass
class SkillStat:
    """Rollup row for one skill."""
    skill: str
    correct: int
    total: int
    percent: int


def accuracy_percent(correct: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round(100.0 * correct / total))


class MasteryLedger:
    """
    Keyed mastery totals with a bounded event log.

    Only model-confirmed verdicts count: an UNKNOWN verdict leaves the
    ledger untouched.
    """

    def __init__(self, max_events: int = MAX_EVENTS):
        self.max_events = max_events
        self.records: Dict[Key, MasteryRecord] = {}
        self.events: List[Event] = []

    # ==================== Recording ====================

    def record(self, subject: str, level: str, skills: Iterable[str],
               verdict: Verdict, now: Optional[float] = None) -> List[MasteryRecord]:
        """
        Apply one verdict to every skill.

        Returns the updated records (empty when nothing was recorded).
        """
        if verdict not in (Verdict.SUCCESS, Verdict.FAILURE):
            return []

        now = time.time() if now is None else now
        is_correct = verdict == Verdict.SUCCESS
        updated = []

        for skill in skills or []:
            skill = (skill or "").strip()
            if not skill:
                continue

            record = self._get_or_create(subject, level, skill)
            record.total_count += 1
            record.last_updated_at = now
            if is_correct:
                record.correct_count += 1
                record.current_streak += 1
            else:
                record.current_streak = 0
            updated.append(record)

            self.events.append(Event(timestamp=now, subject=subject, level=level,
                                     skill=skill, correct=is_correct))

        self._trim_events()
        return updated

    def _trim_events(self):
        overflow = len(self.events) - self.max_events
        if overflow > 0:
            del self.events[:overflow]

    def _get_or_create(self, subject: str, level: str, skill: str) -> MasteryRecord:
        key = (subject, level, skill)
        if key not in self.records:
            self.records[key] = MasteryRecord(subject=subject, level=level, skill=skill)
        return self.records[key]

    def get(self, subject: str, level: str, skill: str) -> Optional[MasteryRecord]:
        return self.records.get((subject, level, skill))

    def clear(self):
        self.records = {}
        self.events = []

    # ==================== Reporting ====================

    def rollup(self, subject: str, level: str, days: float = DEFAULT_WINDOW_DAYS,
               now: Optional[float] = None) -> List[SkillStat]:
        """Aggregate events from the trailing window for one subject/level."""
        now = time.time() if now is None else now
        since = now - days * SECONDS_PER_DAY

        totals: Dict[str, List[int]] = {}
        for e in self.events:
            if e.timestamp < since or e.subject != subject or e.level != level:
                continue
            counts = totals.setdefault(e.skill, [0, 0])
            counts[1] += 1
            if e.correct:
                counts[0] += 1

        return [
            SkillStat(skill=skill, correct=c, total=t, percent=accuracy_percent(c, t))
            for skill, (c, t) in totals.items()
        ]

    def weakest(self, subject: str, level: str, limit: int = 3,
                days: float = DEFAULT_WINDOW_DAYS, now: Optional[float] = None) -> List[SkillStat]:
        return rank_weakest(self.rollup(subject, level, days=days, now=now))[:limit]

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        """Serialize ledger state (for the progress store)."""
        return {
            "records": [asdict(r) for r in self.records.values()],
            "events": [asdict(e) for e in self.events],
        }

    def records_to_list(self) -> List[dict]:
        return [asdict(r) for r in self.records.values()]

    def events_to_list(self) -> List[dict]:
        return [asdict(e) for e in self.events]

    @classmethod
    def from_dict(cls, data: Optional[dict], max_events: int = MAX_EVENTS) -> "MasteryLedger":
        data = data or {}
        return cls.from_parts(data.get("records"), data.get("events"), max_events=max_events)

    @classmethod
    def from_parts(cls, records: Optional[List[dict]], events: Optional[List[dict]],
                   max_events: int = MAX_EVENTS) -> "MasteryLedger":
        """
        Rebuild from stored records and events.

        Entries that are not dicts or carry non-numeric counts are skipped.
        """
        ledger = cls(max_events=max_events)
        for r in records or []:
            try:
                record = MasteryRecord(
                    subject=str(r.get("subject", "")),
                    level=str(r.get("level", "")),
                    skill=str(r.get("skill", "")),
                    correct_count=int(r.get("correct_count", 0)),
                    total_count=int(r.get("total_count", 0)),
                    last_updated_at=float(r.get("last_updated_at", 0.0)),
                    current_streak=int(r.get("current_streak", 0)),
                )
            except (AttributeError, TypeError, ValueError):
                logger.warning("Skipping malformed mastery record: %r", r)
                continue
            ledger.records[record.key] = record
        for e in events or []:
            try:
                event = Event(
                    timestamp=float(e.get("timestamp", 0.0)),
                    subject=str(e.get("subject", "")),
                    level=str(e.get("level", "")),
                    skill=str(e.get("skill", "")),
                    correct=bool(e.get("correct", False)),
                )
            except (AttributeError, TypeError, ValueError):
                logger.warning("Skipping malformed event: %r", e)
                continue
            ledger.events.append(event)
        ledger._trim_events()
        return ledger


def rank_weakest(stats: Iterable[SkillStat]) -> List[SkillStat]:
    """Lowest accuracy first; among ties, the more-attempted skill first."""
    return sorted(stats, key=lambda s: (s.percent, -s.total))
