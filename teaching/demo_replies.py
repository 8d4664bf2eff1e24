"""Canned replies served when no completion-service credential is configured."""

from core.prompt_builder import GRADE, PRACTICE, SESSION, normalize_mode, normalize_task

PRACTICE_DEMO = """## Practice set
1) Solve: 2x + 5 = 17
   Hint: Undo +5 first.
   Answer check: x = 6

2) Solve: 3x - 4 = 11
   Hint: Add 4 to both sides.
   Answer check: x = 5

3) Solve: x/4 + 2 = 7
   Hint: Subtract 2 first.
   Answer check: x = 20

4) Solve: 5(x - 1) = 20
   Hint: Divide by 5 first.
   Answer check: x = 5

5) Solve: 2x + 3x = 25
   Hint: Combine like terms.
   Answer check: x = 5

6) Challenge: 4(x + 2) - 3 = 21
   Hint: Add 3, then divide by 4.
   Answer check: x = 4

## How to use this
Try #1–#3 first. If you get stuck, write your next step and ask the tutor to check it.

## Skills
Linear equations, Inverse operations, Combining like terms"""

SESSION_DEMO = """## Feedback
✅ Demo mode is on (no API key set).

## Roadmap
1) Identify what the question asks for
2) Undo +/− operations
3) Undo ×/÷ operations
4) Check the result in the original problem

## Next step
What is the variable we are trying to find?

## Check
Answer with your step.

## Skills
Problem interpretation, Linear equations, Inverse operations"""

NORMAL_DEMO = """## Goal
Learn the method step-by-step (teach-not-solve).

## Roadmap
1) Identify the target (what you’re solving for)
2) Undo +/− first
3) Undo ×/÷ next
4) Check by substituting back

## Step 1 (Your turn)
What is the problem asking you to find?

## Hint
Look for the letter (like x). That’s usually what we solve for.

## Check Understanding
What does x represent in this problem?

## Skills
Problem interpretation, Linear equations, Inverse operations"""

GRADE_DEMO = """## Feedback
❌ Demo mode is on (no API key set). Close, but one step slipped.

## First error
"2x = 17 + 5": the +5 was moved across without changing its sign.

## Minimal fix
Subtract 5 from both sides instead: 2x = 17 − 5.

## Next question
What does 2x equal after that fix?

## Skills
Linear equations, Inverse operations"""


def demo_reply(task: str, mode: str) -> str:
    """Fixed reply for a task/mode combination."""
    task = normalize_task(task)
    if task == PRACTICE:
        return PRACTICE_DEMO
    if task == GRADE:
        return GRADE_DEMO
    if normalize_mode(mode) == SESSION:
        return SESSION_DEMO
    return NORMAL_DEMO
