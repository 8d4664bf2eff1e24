"""
Prompt Builder - turns a tutoring context into one instruction string.

Policy encoded in the text:
    - Teach, don't solve: the final answer is only allowed after 3 attempts
    - Task variants: tutor (coaching), practice (6 items), grade (first error only)
    - Session mode: one micro-step per turn, roadmap only on the first turn
      or when the topic changes
    - Every format ends with a "## Skills" line consumed by the reply parser

The builder is pure: same context in, same string out.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .learner import AccessibilityOptions, LearningProfile
from .transcript import MAX_PROMPT_TURNS, Transcript, Turn, render_transcript

# Tasks and modes
TUTOR = "tutor"
PRACTICE = "practice"
GRADE = "grade"
TASKS = (TUTOR, PRACTICE, GRADE)

SESSION = "session"
NORMAL = "normal"

# Defaults for missing optional fields
DEFAULT_SUBJECT = "General"
DEFAULT_LEVEL = "Unknown"
DEFAULT_STYLE = "Socratic + step-by-step"

FINAL_ANSWER_MIN_ATTEMPTS = 3
PRACTICE_ITEM_COUNT = 6
ROADMAP_PLACEHOLDER = "—"

DEFAULT_RUBRIC = [
    "Uses a correct method for this kind of problem",
    "Each step follows from the previous one",
    "Arithmetic and notation are accurate",
    "The final answer is stated and checked",
]

# Section layouts, in output order
TUTOR_SESSION_SECTIONS = ["Feedback", "Roadmap", "Next step", "Check", "Skills"]
TUTOR_NORMAL_SECTIONS = ["Goal", "Roadmap", "Step 1 (Your turn)", "Hint", "Check Understanding", "Skills"]
PRACTICE_SECTIONS = ["Practice set", "How to use this", "Skills"]
GRADE_SECTIONS = ["Feedback", "First error", "Minimal fix", "Next question", "Skills"]

_FINAL_ANSWER_REQUEST = re.compile(
    r"\b(final answer|(give|tell|show) me the (final )?(answer|solution)"
    r"|what('?s| is) the answer|just the answer|answer please)\b",
    re.IGNORECASE,
)

# Message templates used by the client actions
DEMO_LESSON_PROMPT = """Solve 2x + 5 = 17 using step-by-step reasoning.
Start in coaching session mode.
Do not give the final answer.
Ask me for the first step."""


def practice_request(topic: str) -> str:
    return f"Create a practice set focused on: {topic}"


def grade_request(work: str) -> str:
    return f"Grade my work. Find the first mistake only.\n\n{work}"


@dataclass
class TutorContext:
    """Everything the prompt depends on."""
    message: str
    task: str = TUTOR
    subject: Optional[str] = None
    level: Optional[str] = None
    style: Optional[str] = None
    accessibility: AccessibilityOptions = field(default_factory=AccessibilityOptions)
    profile: LearningProfile = field(default_factory=LearningProfile)
    mode: str = NORMAL
    coach_mode: bool = True
    attempts: int = 0
    history: List[Turn] = field(default_factory=list)
    topic_changed: bool = False
    rubric: Optional[Union[str, Sequence[str]]] = None


def normalize_task(task: Optional[str]) -> str:
    task = (task or TUTOR).strip().lower()
    return task if task in TASKS else TUTOR


def normalize_mode(mode: Optional[str]) -> str:
    return SESSION if (mode or "").strip().lower() == SESSION else NORMAL


def normalize_attempts(attempts) -> int:
    try:
        return max(0, int(attempts or 0))
    except (TypeError, ValueError):
        return 0


def asks_for_final_answer(message: Optional[str]) -> bool:
    """True when the student explicitly asks to be given the answer."""
    return bool(message) and bool(_FINAL_ANSWER_REQUEST.search(message))


def section_headers(task: Optional[str], mode: Optional[str]) -> List[str]:
    """Mandated section headers for a task/mode combination, in order."""
    task = normalize_task(task)
    if task == PRACTICE:
        return list(PRACTICE_SECTIONS)
    if task == GRADE:
        return list(GRADE_SECTIONS)
    if normalize_mode(mode) == SESSION:
        return list(TUTOR_SESSION_SECTIONS)
    return list(TUTOR_NORMAL_SECTIONS)


def _on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"


def _yes_no(flag: bool) -> str:
    return "YES" if flag else "NO"


def _support_directives(a: AccessibilityOptions, p: LearningProfile) -> List[str]:
    directives = []
    if a.plain_language:
        directives.append("Use short sentences and simple words.")
    if a.focus_mode:
        directives.append("Keep responses very short.")
    if a.dyslexia_mode or p.dyslexia:
        directives.append("Use short lines and short paragraphs. Avoid dense blocks of text.")
    if p.adhd:
        directives.append("Get to the point fast. One small step, then stop.")
    if p.dyscalculia:
        directives.append("Write every number operation out. Do not skip arithmetic steps.")
    if p.autism:
        directives.append("Be literal and predictable. Avoid idioms and sarcasm.")
    if p.anxiety:
        directives.append("Be calm and reassuring. Treat mistakes as normal.")
    if p.ell:
        directives.append("Use simple English and explain any key term in plain words.")
    return directives


def _final_answer_policy(attempts: int, requested: bool) -> str:
    if attempts >= FINAL_ANSWER_MIN_ATTEMPTS:
        lines = [
            f"- Attempts so far: {attempts} (at least {FINAL_ANSWER_MIN_ATTEMPTS}).",
            "- If the student asks for the final answer, you MAY give it, followed by a one-line check.",
        ]
        if requested:
            lines.append("- The student IS asking for the final answer now. Give it, then show how to check it.")
    else:
        lines = [
            f"- Attempts so far: {attempts} (fewer than {FINAL_ANSWER_MIN_ATTEMPTS}).",
            "- If the student asks for the final answer, do NOT give it. Require one more attempt first.",
        ]
        if requested:
            lines.append("- The student IS asking for the final answer now. Do not disclose it: "
                         "encourage them and require one more attempt.")
    return "\n".join(lines)


def _render_sections(sections: Iterable[Tuple[str, str]]) -> str:
    return "\n\n".join(f"## {header}\n{guidance}" for header, guidance in sections)


def _rubric_lines(rubric: Optional[Union[str, Sequence[str]]]) -> str:
    if isinstance(rubric, str):
        items = [line.strip(" -*•\t") for line in rubric.splitlines()]
    else:
        items = [str(r).strip() for r in (rubric or [])]
    items = [i for i in items if i] or DEFAULT_RUBRIC
    return "\n".join(f"- {i}" for i in items)


_HEADING_START = re.compile(r"^([ \t]*)#", re.MULTILINE)


def _quote_message(text: str) -> str:
    # Escape markdown headings in pasted work so they cannot add sections
    return _HEADING_START.sub(r"\1\\#", text or "")


def _one_line(value: Optional[str], default: str) -> str:
    return " ".join((value or "").split()) or default


def _base_prompt(ctx: TutorContext, task: str, mode: str, attempts: int) -> str:
    a = ctx.accessibility
    p = ctx.profile
    directives = _support_directives(a, p)
    support = "\n".join(f"- {d}" for d in directives) if directives else "- No extra support requested."
    transcript = render_transcript(ctx.history, limit=MAX_PROMPT_TURNS)
    requested = asks_for_final_answer(ctx.message)

    return f"""You are "AI Tutor", a school-safe tutor that TEACHES and does NOT simply solve.
You must act like an interactive tutor: ask, wait, check, then continue.

Context:
- Task: {task}
- Subject: {_one_line(ctx.subject, DEFAULT_SUBJECT)}
- Level: {_one_line(ctx.level, DEFAULT_LEVEL)}
- Preferred style: {_one_line(ctx.style, DEFAULT_STYLE)}
- Mode: {"SESSION (one micro-step at a time)" if mode == SESSION else "NORMAL"}
- Coach Mode: {_on_off(ctx.coach_mode)}
- Attempts so far: {attempts}

Accessibility toggles:
- Dyslexia-friendly: {_on_off(a.dyslexia_mode)}
- Plain language: {_on_off(a.plain_language)}
- Focus mode: {_on_off(a.focus_mode)}

Learning profile:
- ADHD/focus support: {_yes_no(p.adhd)}
- Dyslexia support: {_yes_no(p.dyslexia)}
- Dyscalculia support: {_yes_no(p.dyscalculia)}
- Autism-friendly: {_yes_no(p.autism)}
- Anxiety-sensitive: {_yes_no(p.anxiety)}
- English learner (ELL): {_yes_no(p.ell)}

Support directives:
{support}

Non-negotiable rules:
1) Do NOT provide the final answer immediately in tutoring.
2) Prefer guiding questions + tiny hints.
3) Final answers follow the FINAL ANSWER POLICY below.
4) Keep tone supportive and professional (school tone). No shaming language.

FINAL ANSWER POLICY:
{_final_answer_policy(attempts, requested)}

CRITICAL: Skill tagging for progress tracking
- Always end with a final Skills section holding 2-5 short skill tags.
- Skills must be comma-separated, no bullets, no other punctuation.

Conversation so far:
{transcript}

User message:
\"\"\"{_quote_message(ctx.message)}\"\"\"
"""


def _practice_prompt() -> str:
    sections = [
        ("Practice set",
         "1) Question...\n   Hint: ...\n   Answer check: ...\n\n"
         f"(repeat for all {PRACTICE_ITEM_COUNT} items)"),
        ("How to use this", "(2-4 lines)"),
        ("Skills", "(Comma-separated tags)"),
    ]
    return f"""You are generating PRACTICE, not tutoring a single problem.

Rules for practice:
- Create {PRACTICE_ITEM_COUNT} questions aligned to the learner's level and the requested skill/topic.
- Do NOT provide full solutions.
- Provide a short hint for each question.
- Include a very short "Answer check" (final numeric/choice only) but DO NOT show steps.
- Order the questions by difficulty: easy, then medium, then challenge.

OUTPUT FORMAT (exact):

{_render_sections(sections)}
"""


def _grade_prompt(ctx: TutorContext) -> str:
    sections = [
        ("Feedback", "(✅ if the work is fully correct, otherwise ❌, + 1 short line)"),
        ("First error", "(Quote the FIRST incorrect step only and say what is wrong with it. "
                        f'If there is no error, write: "{ROADMAP_PLACEHOLDER}")'),
        ("Minimal fix", "(Exactly ONE minimal correction for that step. Do not redo the rest of the work.)"),
        ("Next question", "(Exactly ONE question asking the student to continue from the corrected step.)"),
        ("Skills", "(Comma-separated tags)"),
    ]
    return f"""You are GRADING pasted student work, not tutoring from scratch.

Rubric:
{_rubric_lines(ctx.rubric)}

Rules for grading:
- Check the work against the rubric, step by step, in order.
- Identify the FIRST error only. Ignore anything after it.
- Propose exactly one minimal correction.
- Ask exactly one next-step question.
- Do NOT write out the complete corrected solution.

OUTPUT FORMAT (exact):

{_render_sections(sections)}
"""


def _tutor_prompt(ctx: TutorContext, mode: str) -> str:
    coach = ""
    if ctx.coach_mode:
        coach = """Coach Mode behavior:
- Give a short Roadmap (3-5 steps) at the start of a session OR if the student changes the problem/topic.
- Only one step at a time.
- Ask a check-for-understanding question every ~2 tutor turns (brief).
- If the student gives an incorrect step, briefly explain what's wrong and ask for a corrected attempt. Do not continue.

"""

    if mode == SESSION:
        first_turn = not Transcript(turns=list(ctx.history)).has_tutor_turn()
        if first_turn or ctx.topic_changed:
            roadmap = "(This is the start of the problem: give a roadmap of 3-5 steps max.)"
        else:
            roadmap = f'(Not needed on this turn. Write only: "{ROADMAP_PLACEHOLDER}")'
        sections = [
            ("Feedback", "(✅ or ❌ + 1-2 short lines about the student's last step)"),
            ("Roadmap", roadmap),
            ("Next step", "(ONE instruction or question only. End with a prompt for the student to respond.)"),
            ("Check", '(One short question that confirms understanding. If it\'s not time for a check, '
                      'write: "Answer with your step.")'),
            ("Skills", "(Comma-separated tags)"),
        ]
        layout = "Return EXACTLY these sections, in order:"
    else:
        sections = [
            ("Goal", "(One line: what the student will learn.)"),
            ("Roadmap", "(3-5 short steps.)"),
            ("Step 1 (Your turn)", "(The first step as a question for the student. Do not solve it.)"),
            ("Hint", "(One small hint.)"),
            ("Check Understanding", "(One short question.)"),
            ("Skills", "(Comma-separated tags)"),
        ]
        layout = "Return these sections, in order:"

    return f"""{coach}Output format rules:
{layout}

{_render_sections(sections)}

Style guidance:
- Use math layout when helpful (aligned steps / mini tables).
- Follow the support directives above.
"""


def build_prompt(ctx: TutorContext) -> str:
    """Build the full instruction string for the completion model."""
    task = normalize_task(ctx.task)
    mode = normalize_mode(ctx.mode)
    attempts = normalize_attempts(ctx.attempts)
    history = [t if isinstance(t, Turn) else Turn.from_dict(t) for t in (ctx.history or [])]
    ctx = TutorContext(**{**ctx.__dict__, "history": history})

    base = _base_prompt(ctx, task, mode, attempts)
    if task == PRACTICE:
        return f"{base}\n{_practice_prompt()}"
    if task == GRADE:
        return f"{base}\n{_grade_prompt(ctx)}"
    return f"{base}\n{_tutor_prompt(ctx, mode)}"
