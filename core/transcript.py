"""
Transcript - ordered turns of the current tutoring session.

Turns are immutable once appended. Only the most recent MAX_PROMPT_TURNS
are rendered into a prompt; older turns are dropped from the front.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

MAX_PROMPT_TURNS = 18
EMPTY_TRANSCRIPT = "(none)"

STUDENT = "student"
TUTOR = "tutor"


@dataclass(frozen=True)
class Turn:
    """One message in the transcript."""
    role: str
    text: str

    def render(self) -> str:
        # One line per turn so quoted replies can't introduce section headings
        text = " ".join(line.strip() for line in (self.text or "").splitlines() if line.strip())
        return f"{(self.role or '').upper()}: {text}"

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict) -> "Turn":
        data = data or {}
        return cls(role=str(data.get("role") or ""), text=str(data.get("text") or ""))


@dataclass
class Transcript:
    """Append-only list of turns for one session."""
    turns: List[Turn] = field(default_factory=list)

    def append(self, role: str, text: str) -> Turn:
        turn = Turn(role=role, text=text)
        self.turns.append(turn)
        return turn

    def clear(self):
        self.turns = []

    def recent(self, limit: int = MAX_PROMPT_TURNS) -> List[Turn]:
        if limit <= 0:
            return []
        return self.turns[-limit:]

    def has_tutor_turn(self) -> bool:
        return any(t.role == TUTOR for t in self.turns)

    def __len__(self) -> int:
        return len(self.turns)

    def __iter__(self):
        return iter(self.turns)

    def to_list(self) -> List[Dict[str, str]]:
        return [t.to_dict() for t in self.turns]


def render_transcript(turns: Optional[Iterable[Turn]], limit: int = MAX_PROMPT_TURNS) -> str:
    """Render the tail of a transcript as `ROLE: text` lines, or a placeholder."""
    turns = list(turns or [])[-limit:] if limit > 0 else []
    if not turns:
        return EMPTY_TRANSCRIPT
    return "\n".join(t.render() for t in turns)
