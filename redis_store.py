"""
Progress Store - persisted learner profile and mastery state.

Key Structure:
    learner:{learner_id}:profile -> String (JSON: profile + accessibility flags)
    learner:{learner_id}:mastery -> Hash (subject::level::skill -> JSON record)
    learner:{learner_id}:events  -> List (JSON of each event, capped at 500)

Each record is read on load and written back on every mutation.
Writers are last-writer-wins; there is no cross-process transaction.
"""

import json
import logging
from typing import Dict, Optional, Tuple

import redis

from config import Settings, get_settings
from core.learner import AccessibilityOptions, LearningProfile
from core.mastery_ledger import MAX_EVENTS, MasteryLedger

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "::"


class ProgressStore:
    """Repository interface for per-learner persisted state."""

    def load_profile(self, learner_id: str) -> Tuple[LearningProfile, AccessibilityOptions]:
        raise NotImplementedError

    def save_profile(self, learner_id: str, profile: LearningProfile,
                     accessibility: AccessibilityOptions):
        raise NotImplementedError

    def load_ledger(self, learner_id: str) -> MasteryLedger:
        raise NotImplementedError

    def save_ledger(self, learner_id: str, ledger: MasteryLedger):
        raise NotImplementedError

    def clear_progress(self, learner_id: str):
        """Drop mastery and events; keep the profile."""
        raise NotImplementedError


def _profile_payload(profile: LearningProfile, accessibility: AccessibilityOptions) -> Dict:
    return {"profile": profile.to_dict(), "accessibility": accessibility.to_dict()}


def _profile_from_payload(data: Optional[Dict]) -> Tuple[LearningProfile, AccessibilityOptions]:
    if not isinstance(data, dict):
        data = {}
    return (LearningProfile.from_dict(data.get("profile")),
            AccessibilityOptions.from_dict(data.get("accessibility")))


class RedisStore(ProgressStore):
    def __init__(self, client: Optional[redis.Redis] = None, settings: Optional[Settings] = None,
                 max_events: int = MAX_EVENTS):
        """Connect to Redis using configured settings (or an injected client)."""
        settings = settings or get_settings()
        self.client = client or redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            decode_responses=True  # Return strings instead of bytes
        )
        self.max_events = max_events

    # ==================== Key Builders ====================

    def _profile_key(self, learner_id: str) -> str:
        return f"learner:{learner_id}:profile"

    def _mastery_key(self, learner_id: str) -> str:
        return f"learner:{learner_id}:mastery"

    def _events_key(self, learner_id: str) -> str:
        return f"learner:{learner_id}:events"

    # ==================== Profile ====================

    def load_profile(self, learner_id: str) -> Tuple[LearningProfile, AccessibilityOptions]:
        raw = self.client.get(self._profile_key(learner_id))
        try:
            data = json.loads(raw) if raw else None
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable profile for learner %s", learner_id)
            data = None
        return _profile_from_payload(data)

    def save_profile(self, learner_id: str, profile: LearningProfile,
                     accessibility: AccessibilityOptions):
        self.client.set(self._profile_key(learner_id),
                        json.dumps(_profile_payload(profile, accessibility)))

    # ==================== Mastery + Events ====================

    def load_ledger(self, learner_id: str) -> MasteryLedger:
        """
        Rebuild the ledger from the mastery hash and the event list.

        Unreadable entries are skipped rather than failing the load.
        """
        records = []
        for field, raw in self.client.hgetall(self._mastery_key(learner_id)).items():
            try:
                records.append(json.loads(raw))
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable mastery record %s", field)

        events = []
        for raw in self.client.lrange(self._events_key(learner_id), 0, -1):
            try:
                events.append(json.loads(raw))
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable event for learner %s", learner_id)

        return MasteryLedger.from_parts(records, events, max_events=self.max_events)

    def save_ledger(self, learner_id: str, ledger: MasteryLedger):
        mastery_key = self._mastery_key(learner_id)
        events_key = self._events_key(learner_id)

        records = {
            KEY_SEPARATOR.join((r["subject"], r["level"], r["skill"])): json.dumps(r)
            for r in ledger.records_to_list()
        }
        events = [json.dumps(e) for e in ledger.events_to_list()]

        pipe = self.client.pipeline()
        pipe.delete(mastery_key, events_key)
        if records:
            pipe.hset(mastery_key, mapping=records)
        if events:
            pipe.rpush(events_key, *events)
            pipe.ltrim(events_key, -self.max_events, -1)
        pipe.execute()

    def clear_progress(self, learner_id: str):
        self.client.delete(self._mastery_key(learner_id), self._events_key(learner_id))

    def delete_learner(self, learner_id: str):
        """Delete all data for a learner (for testing/cleanup)."""
        self.client.delete(
            self._profile_key(learner_id),
            self._mastery_key(learner_id),
            self._events_key(learner_id)
        )


class MemoryStore(ProgressStore):
    """Process-local store, used when no Redis is configured and in tests."""

    def __init__(self, max_events: int = MAX_EVENTS):
        self.max_events = max_events
        self._profiles: Dict[str, Dict] = {}
        self._ledgers: Dict[str, Dict] = {}

    def load_profile(self, learner_id: str) -> Tuple[LearningProfile, AccessibilityOptions]:
        return _profile_from_payload(self._profiles.get(learner_id))

    def save_profile(self, learner_id: str, profile: LearningProfile,
                     accessibility: AccessibilityOptions):
        self._profiles[learner_id] = _profile_payload(profile, accessibility)

    def load_ledger(self, learner_id: str) -> MasteryLedger:
        return MasteryLedger.from_dict(self._ledgers.get(learner_id), max_events=self.max_events)

    def save_ledger(self, learner_id: str, ledger: MasteryLedger):
        self._ledgers[learner_id] = ledger.to_dict()

    def clear_progress(self, learner_id: str):
        self._ledgers.pop(learner_id, None)


def create_store(settings: Optional[Settings] = None) -> ProgressStore:
    """Pick the configured backend."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        logger.info("Using in-memory progress store")
        return MemoryStore()
    logger.info("Using Redis progress store at %s:%s", settings.redis_host, settings.redis_port)
    return RedisStore(settings=settings)
