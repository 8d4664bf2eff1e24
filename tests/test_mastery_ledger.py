"""Tests for core/mastery_ledger.py"""

from core.mastery_ledger import (
    SECONDS_PER_DAY, MasteryLedger, SkillStat, accuracy_percent, rank_weakest,
)
from core.reply_parser import Verdict

NOW = 1_700_000_000.0


def test_streak_counts_consecutive_successes():
    ledger = MasteryLedger()
    for i in range(4):
        ledger.record("Math", "Middle School", ["Fractions"], Verdict.SUCCESS, now=NOW + i)

    record = ledger.get("Math", "Middle School", "Fractions")
    assert record.current_streak == 4
    assert record.correct_count == 4
    assert record.total_count == 4
    assert record.last_updated_at == NOW + 3


def test_failure_resets_streak_and_totals_never_drop():
    ledger = MasteryLedger()
    ledger.record("Math", "MS", ["Fractions"], Verdict.SUCCESS, now=NOW)
    ledger.record("Math", "MS", ["Fractions"], Verdict.SUCCESS, now=NOW)
    before = ledger.get("Math", "MS", "Fractions")
    correct, total = before.correct_count, before.total_count

    ledger.record("Math", "MS", ["Fractions"], Verdict.FAILURE, now=NOW + 1)

    record = ledger.get("Math", "MS", "Fractions")
    assert record.current_streak == 0
    assert record.correct_count == correct
    assert record.total_count == total + 1
    assert record.correct_count <= record.total_count


def test_unknown_verdict_and_empty_skills_change_nothing():
    ledger = MasteryLedger()
    assert ledger.record("Math", "MS", ["Fractions"], Verdict.UNKNOWN, now=NOW) == []
    assert ledger.record("Math", "MS", [], Verdict.SUCCESS, now=NOW) == []
    assert ledger.record("Math", "MS", ["  ", ""], Verdict.SUCCESS, now=NOW) == []
    assert ledger.records == {}
    assert ledger.events == []


def test_one_event_per_skill():
    ledger = MasteryLedger()
    updated = ledger.record("Math", "MS", ["Fractions", "Ratios"], Verdict.SUCCESS, now=NOW)

    assert [r.skill for r in updated] == ["Fractions", "Ratios"]
    assert [(e.skill, e.correct) for e in ledger.events] == [("Fractions", True), ("Ratios", True)]


def test_event_log_drops_oldest_first():
    ledger = MasteryLedger()
    for i in range(505):
        ledger.record("Math", "MS", ["Fractions"], Verdict.SUCCESS, now=NOW + i)

    assert len(ledger.events) == 500
    assert ledger.events[0].timestamp == NOW + 5
    assert ledger.events[-1].timestamp == NOW + 504
    # Totals are not bounded by the log
    assert ledger.get("Math", "MS", "Fractions").total_count == 505


def test_rollup_filters_window_and_subject_level():
    ledger = MasteryLedger()
    ledger.record("Math", "MS", ["Fractions"], Verdict.SUCCESS, now=NOW - 8 * SECONDS_PER_DAY)
    ledger.record("Math", "MS", ["Fractions"], Verdict.SUCCESS, now=NOW - 1)
    ledger.record("Math", "MS", ["Fractions"], Verdict.FAILURE, now=NOW - 2)
    ledger.record("Math", "MS", ["Fractions"], Verdict.SUCCESS, now=NOW - 3)
    ledger.record("Math", "HS", ["Fractions"], Verdict.FAILURE, now=NOW)
    ledger.record("Science", "MS", ["Fractions"], Verdict.FAILURE, now=NOW)

    stats = ledger.rollup("Math", "MS", days=7, now=NOW)
    assert stats == [SkillStat(skill="Fractions", correct=2, total=3, percent=67)]


def test_accuracy_percent():
    assert accuracy_percent(0, 0) == 0
    assert accuracy_percent(1, 2) == 50
    assert accuracy_percent(2, 3) == 67
    assert accuracy_percent(5, 5) == 100


def test_weakest_sorts_by_percent_then_more_attempts():
    stats = [
        SkillStat("Ratios", 1, 2, 50),
        SkillStat("Area", 4, 4, 100),
        SkillStat("Fractions", 5, 10, 50),
        SkillStat("Slope", 0, 1, 0),
    ]
    assert [s.skill for s in rank_weakest(stats)] == ["Slope", "Fractions", "Ratios", "Area"]


def test_weakest_from_ledger():
    ledger = MasteryLedger()
    ledger.record("Math", "MS", ["Area"], Verdict.SUCCESS, now=NOW)
    ledger.record("Math", "MS", ["Slope"], Verdict.FAILURE, now=NOW)
    ledger.record("Math", "MS", ["Ratios", "Slope"], Verdict.FAILURE, now=NOW)

    weakest = ledger.weakest("Math", "MS", limit=2, now=NOW)
    assert [(s.skill, s.total) for s in weakest] == [("Slope", 2), ("Ratios", 1)]


def test_serialization_round_trip():
    ledger = MasteryLedger()
    ledger.record("Math", "MS", ["Fractions", "Ratios"], Verdict.SUCCESS, now=NOW)
    ledger.record("Math", "MS", ["Fractions"], Verdict.FAILURE, now=NOW + 1)

    restored = MasteryLedger.from_dict(ledger.to_dict())
    assert restored.records == ledger.records
    assert restored.events == ledger.events


def test_clear():
    ledger = MasteryLedger()
    ledger.record("Math", "MS", ["Fractions"], Verdict.SUCCESS, now=NOW)
    ledger.clear()
    assert ledger.records == {}
    assert ledger.events == []
