from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from explog.models.export_result import ExportResult, ExportStatus, UpsertCounters
from explog.services.summary import render_summary_line

"""SUMMARY 行フォーマット契約テスト"""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+status=(exported|no_data|invalid|cancelled|failed|partial)\s+"
    r"experiments=\+([0-9]+)/~([0-9]+)\s+stacks=\+([0-9]+)/~([0-9]+)\s+"
    r"sites=\+([0-9]+)\s+elapsed_sec=([0-9]+\.?[0-9]*)$"
)


def test_summary_pattern_example_line():
    line = "SUMMARY status=exported experiments=+1/~0 stacks=+4/~2 sites=+1 elapsed_sec=0.84"
    assert SUMMARY_PATTERN.match(line)


def test_rendered_lines_match_contract():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for status in ExportStatus:
        for elapsed in (0, 0.000042, 0.5, 3):
            result = ExportResult(
                status=status,
                counters=UpsertCounters(inserted_stacks=2, updated_experiments=1),
                start_time=start,
                end_time=start + timedelta(seconds=elapsed),
            )
            line = render_summary_line(result)
            assert SUMMARY_PATTERN.match(line), line
