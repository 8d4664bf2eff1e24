"""
Core module - prompt construction, reply parsing and mastery tracking.

Components:
    - transcript: ordered session turns, tail-capped for prompts
    - learner: learning profile and accessibility toggles
    - prompt_builder: deterministic instruction templates (tutor / practice / grade)
    - reply_parser: skill tags and correctness glyph from free-text replies
    - mastery_ledger: per-skill totals, streaks and the windowed event rollup
    - report: CSV export of a rollup
    - exceptions: error hierarchy shared with the HTTP layer
"""

from .exceptions import (
    TutorError,
    InvalidRequestError,
    UpstreamServiceError,
    SessionNotFoundError,
    SessionBusyError,
)
from .learner import AccessibilityOptions, LearningProfile
from .mastery_ledger import MasteryLedger, MasteryRecord, Event, SkillStat
from .prompt_builder import TutorContext, build_prompt, section_headers
from .reply_parser import ParsedReply, Verdict, parse_reply
from .report import rollup_to_csv, parse_report
from .transcript import Transcript, Turn

__all__ = [
    "TutorError",
    "InvalidRequestError",
    "UpstreamServiceError",
    "SessionNotFoundError",
    "SessionBusyError",
    "AccessibilityOptions",
    "LearningProfile",
    "MasteryLedger",
    "MasteryRecord",
    "Event",
    "SkillStat",
    "TutorContext",
    "build_prompt",
    "section_headers",
    "ParsedReply",
    "Verdict",
    "parse_reply",
    "rollup_to_csv",
    "parse_report",
    "Transcript",
    "Turn",
]
