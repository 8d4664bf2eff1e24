"""
Reply Parser - salvage structured signals from free-text model replies.

Two-stage: locate the section marker, isolate its body, then split/validate.
The model is not bound to follow the requested format, so every path
degrades to an empty/unknown result instead of raising.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

MAX_SKILLS = 6

SUCCESS_GLYPH = "✅"
FAILURE_GLYPH = "❌"

_SKILLS_MARKER = re.compile(r"^[ \t]*#{2,}[ \t]*skills\b[ \t:]*", re.IGNORECASE | re.MULTILINE)
_FEEDBACK_MARKER = re.compile(r"^[ \t]*#{2,}[ \t]*feedback\b[ \t:]*", re.IGNORECASE | re.MULTILINE)
_NEXT_SECTION = re.compile(r"^[ \t]*##", re.MULTILINE)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


class Verdict(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"


@dataclass
class ParsedReply:
    skills: List[str] = field(default_factory=list)
    verdict: Verdict = Verdict.UNKNOWN


def _section_body(text: str, marker: re.Pattern, last: bool) -> Optional[str]:
    """Text after a marker line up to the next '##' heading, or None."""
    matches = list(marker.finditer(text))
    if not matches:
        return None
    match = matches[-1] if last else matches[0]
    rest = text[match.end():]
    nxt = _NEXT_SECTION.search(rest)
    return rest[:nxt.start()] if nxt else rest


def parse_skills(text) -> List[str]:
    """Skill tags from the last Skills section; [] if absent."""
    if not isinstance(text, str) or not text:
        return []
    body = _section_body(text, _SKILLS_MARKER, last=True)
    if body is None:
        return []

    skills = []
    for chunk in re.split(r"[,\n]", body):
        tag = _BULLET.sub("", chunk).strip().strip(".;").strip()
        if tag:
            skills.append(tag)
        if len(skills) >= MAX_SKILLS:
            break
    return skills


def parse_verdict(text) -> Verdict:
    """Correctness glyph on the first line of the Feedback section."""
    if not isinstance(text, str) or not text:
        return Verdict.UNKNOWN
    body = _section_body(text, _FEEDBACK_MARKER, last=False)
    if body is None:
        return Verdict.UNKNOWN

    first_line = next((line for line in body.splitlines() if line.strip()), "")
    ok = first_line.find(SUCCESS_GLYPH)
    bad = first_line.find(FAILURE_GLYPH)
    if ok == -1 and bad == -1:
        return Verdict.UNKNOWN
    if bad == -1 or (ok != -1 and ok < bad):
        return Verdict.SUCCESS
    return Verdict.FAILURE


def parse_reply(text) -> ParsedReply:
    return ParsedReply(skills=parse_skills(text), verdict=parse_verdict(text))
