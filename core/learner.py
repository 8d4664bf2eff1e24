"""
Learner settings - learning profile and accessibility toggles.

Both only change how the prompt is phrased; neither changes output structure.
"""

from dataclasses import dataclass, asdict, fields
from typing import Dict, Optional

# Wire names used by the browser client
_ACCESSIBILITY_ALIASES = {
    "dyslexiaMode": "dyslexia_mode",
    "plainLanguage": "plain_language",
    "focusMode": "focus_mode",
}


@dataclass
class LearningProfile:
    """Persisted per learner; toggled explicitly by the user."""
    adhd: bool = False
    dyslexia: bool = False
    dyscalculia: bool = False
    autism: bool = False
    anxiety: bool = False
    ell: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "LearningProfile":
        if not isinstance(data, dict):
            data = {}
        return cls(**{f.name: bool(data.get(f.name, False)) for f in fields(cls)})


@dataclass
class AccessibilityOptions:
    dyslexia_mode: bool = False
    plain_language: bool = False
    focus_mode: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    def to_wire(self) -> Dict[str, bool]:
        """camelCase keys, as the browser client sends them."""
        return {wire: getattr(self, name) for wire, name in _ACCESSIBILITY_ALIASES.items()}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AccessibilityOptions":
        data = dict(data) if isinstance(data, dict) else {}
        for wire, name in _ACCESSIBILITY_ALIASES.items():
            if wire in data:
                data[name] = data[wire]
        return cls(**{f.name: bool(data.get(f.name, False)) for f in fields(cls)})
