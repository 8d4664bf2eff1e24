"""Tests for core/report.py"""

from core.mastery_ledger import MasteryLedger, SkillStat
from core.reply_parser import Verdict
from core.report import CSV_HEADER, parse_report, rollup_to_csv

NOW = 1_700_000_000.0


def test_header_and_rows():
    csv_text = rollup_to_csv([SkillStat("Fractions", 2, 3, 67), SkillStat("Ratios", 0, 1, 0)])
    lines = csv_text.splitlines()

    assert lines[0] == "skill,correct,total,accuracy_percent"
    assert lines[1] == "Fractions,2,3,67"
    assert lines[2] == "Ratios,0,1,0"


def test_skill_names_are_escaped():
    csv_text = rollup_to_csv([SkillStat('Fractions, "mixed"', 1, 1, 100)])
    assert csv_text.splitlines()[1] == '"Fractions, ""mixed""",1,1,100'


def test_export_then_parse_recovers_triples():
    ledger = MasteryLedger()
    ledger.record("Math", "MS", ["Fractions", 'Ratios, "part-to-part"'], Verdict.SUCCESS, now=NOW)
    ledger.record("Math", "MS", ["Fractions"], Verdict.FAILURE, now=NOW + 1)
    stats = ledger.rollup("Math", "MS", now=NOW + 2)

    recovered = parse_report(rollup_to_csv(stats))
    assert sorted(recovered) == sorted((s.skill, s.correct, s.total) for s in stats)


def test_empty_rollup():
    assert rollup_to_csv([]).splitlines() == [",".join(CSV_HEADER)]
    assert parse_report(rollup_to_csv([])) == []
