"""Progress report - CSV export of a windowed rollup."""

import csv
import io
from typing import Iterable, List, Tuple

from .mastery_ledger import SkillStat

CSV_HEADER = ["skill", "correct", "total", "accuracy_percent"]


def rollup_to_csv(stats: Iterable[SkillStat]) -> str:
    """One row per skill; skill names are quoted when they hold commas or quotes."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for s in stats:
        writer.writerow([s.skill, s.correct, s.total, s.percent])
    return buf.getvalue()


def parse_report(text: str) -> List[Tuple[str, int, int]]:
    """Read back (skill, correct, total) triples from an exported report."""
    rows = list(csv.reader(io.StringIO(text or "")))
    if rows and rows[0] == CSV_HEADER:
        rows = rows[1:]
    return [(r[0], int(r[1]), int(r[2])) for r in rows if len(r) >= 3]
