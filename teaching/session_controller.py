"""
Session Controller - turn-taking for one tutoring session.

States:
    idle   -> no completed exchange yet (or after reset)
    active -> at least one completed exchange

In coaching (session) mode each exchange appends the student turn, then the
tutor turn, and graded step submissions move the attempt counter. Both are
committed together, so a failed upstream call changes neither. Normal mode
keeps no transcript and counts no attempts. Mastery is only updated when the
reply carries a recognizable verdict.

Reset, delete and exchanges share the per-session lock; whichever arrives
while another holds it gets SessionBusyError.
"""

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.exceptions import InvalidRequestError, SessionBusyError, SessionNotFoundError
from core.mastery_ledger import MasteryRecord
from core.prompt_builder import (
    DEFAULT_LEVEL, DEFAULT_SUBJECT, DEMO_LESSON_PROMPT, GRADE, PRACTICE, SESSION, TUTOR,
    TutorContext, grade_request, normalize_mode, practice_request,
)
from core.reply_parser import ParsedReply, Verdict, parse_reply
from core.transcript import STUDENT, TUTOR as TUTOR_ROLE, Transcript
from redis_store import ProgressStore

from .tutor_service import TutorService

logger = logging.getLogger(__name__)

IDLE = "idle"
ACTIVE = "active"


@dataclass
class SessionOptions:
    """Per-session choices made in the UI."""
    learner_id: str = "default"
    subject: Optional[str] = None
    level: Optional[str] = None
    style: Optional[str] = None
    mode: str = SESSION
    coach_mode: bool = True


@dataclass
class SessionState:
    session_id: str
    options: SessionOptions = field(default_factory=SessionOptions)
    transcript: Transcript = field(default_factory=Transcript)
    attempt_count: int = 0
    last_reply: Optional[str] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def status(self) -> str:
        return ACTIVE if len(self.transcript) or self.last_reply is not None else IDLE

    def reset(self):
        # Profile and mastery live in the store and are kept
        self.transcript.clear()
        self.attempt_count = 0
        self.last_reply = None

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "status": self.status,
            "attempts": self.attempt_count,
            "last_reply": self.last_reply,
            "transcript": self.transcript.to_list(),
            "options": {
                "learner_id": self.options.learner_id,
                "subject": self.options.subject,
                "level": self.options.level,
                "style": self.options.style,
                "mode": self.options.mode,
                "coach_mode": self.options.coach_mode,
            },
        }


@dataclass
class ExchangeResult:
    reply: str
    parsed: ParsedReply
    attempts: int
    mastery_updates: List[MasteryRecord] = field(default_factory=list)


class SessionController:
    def __init__(self, tutor: TutorService, store: ProgressStore):
        self.tutor = tutor
        self.store = store
        self.sessions: Dict[str, SessionState] = {}

    # ==================== Session Lifecycle ====================

    def create_session(self, options: Optional[SessionOptions] = None,
                       session_id: Optional[str] = None) -> SessionState:
        session_id = session_id or str(uuid.uuid4())[:8]
        options = options or SessionOptions()
        options.mode = normalize_mode(options.mode)
        session = SessionState(session_id=session_id, options=options)
        self.sessions[session_id] = session
        return session

    def get_session(self, session_id: str) -> SessionState:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def reset(self, session_id: str) -> SessionState:
        session = self.get_session(session_id)
        with self._hold(session):
            session.reset()
        return session

    def delete_session(self, session_id: str):
        """Forget the session entirely."""
        session = self.get_session(session_id)
        with self._hold(session):
            self.sessions.pop(session_id, None)

    @contextmanager
    def _hold(self, session: SessionState):
        if not session.lock.acquire(blocking=False):
            raise SessionBusyError(session.session_id)
        try:
            yield session
        finally:
            session.lock.release()

    # ==================== Actions ====================

    def start(self, session_id: str, message: str) -> ExchangeResult:
        """New problem: clear the session, then ask the tutor to begin."""
        session = self.get_session(session_id)
        return self._exchange(session, message, task=TUTOR, is_attempt=False, fresh=True)

    def submit_step(self, session_id: str, message: str, topic_changed: bool = False) -> ExchangeResult:
        """A graded attempt at the current step (coaching sessions only)."""
        session = self.get_session(session_id)
        if session.options.mode != SESSION:
            raise InvalidRequestError("Step submissions need a session-mode session")
        return self._exchange(session, message, task=TUTOR, is_attempt=True,
                              topic_changed=topic_changed)

    def start_demo(self, session_id: str) -> ExchangeResult:
        session = self.get_session(session_id)
        return self._exchange(session, DEMO_LESSON_PROMPT, task=TUTOR, is_attempt=False, fresh=True)

    def practice(self, session_id: str, topic: str) -> ExchangeResult:
        if not topic or not topic.strip():
            raise InvalidRequestError("Missing topic")
        session = self.get_session(session_id)
        return self._exchange(session, practice_request(topic.strip()), task=PRACTICE, is_attempt=False)

    def grade(self, session_id: str, work: str, rubric: Optional[str] = None) -> ExchangeResult:
        if not work or not work.strip():
            raise InvalidRequestError("Missing work")
        session = self.get_session(session_id)
        return self._exchange(session, grade_request(work.strip()), task=GRADE, is_attempt=False,
                              rubric=rubric)

    # ==================== Exchange ====================

    def _exchange(self, session: SessionState, message: str, task: str, is_attempt: bool,
                  topic_changed: bool = False, rubric: Optional[str] = None,
                  fresh: bool = False) -> ExchangeResult:
        if not isinstance(message, str) or not message.strip():
            raise InvalidRequestError("Missing message")
        with self._hold(session):
            if fresh:
                session.reset()
            opts = session.options
            coaching = opts.mode == SESSION
            attempts = session.attempt_count + 1 if (is_attempt and coaching) else session.attempt_count
            profile, accessibility = self.store.load_profile(opts.learner_id)

            ctx = TutorContext(
                message=message,
                task=task,
                subject=opts.subject,
                level=opts.level,
                style=opts.style,
                accessibility=accessibility,
                profile=profile,
                mode=opts.mode,
                coach_mode=opts.coach_mode,
                attempts=attempts,
                history=session.transcript.recent(),
                topic_changed=topic_changed,
                rubric=rubric,
            )
            reply = self.tutor.reply(ctx)

            if coaching:
                session.transcript.append(STUDENT, message)
                session.transcript.append(TUTOR_ROLE, reply)
            session.attempt_count = attempts
            session.last_reply = reply

            parsed = parse_reply(reply)
            updates = self._record_mastery(opts, parsed)
            logger.info("Session %s: task=%s attempts=%d verdict=%s skills=%s",
                        session.session_id, task, attempts, parsed.verdict.value, parsed.skills)
            return ExchangeResult(reply=reply, parsed=parsed, attempts=attempts, mastery_updates=updates)

    def _record_mastery(self, opts: SessionOptions, parsed: ParsedReply) -> List[MasteryRecord]:
        if parsed.verdict == Verdict.UNKNOWN or not parsed.skills:
            return []
        ledger = self.store.load_ledger(opts.learner_id)
        updates = ledger.record(
            subject=opts.subject or DEFAULT_SUBJECT,
            level=opts.level or DEFAULT_LEVEL,
            skills=parsed.skills,
            verdict=parsed.verdict,
            now=time.time(),
        )
        self.store.save_ledger(opts.learner_id, ledger)
        return updates
