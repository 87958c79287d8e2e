from datetime import datetime, timedelta, timezone

import pytest

from quizdrill.core.auth import AllowListGate
from quizdrill.core.config import Settings
from quizdrill.core.errors import ForbiddenError, SchemaError
from quizdrill.services.progress import ProgressReader
from quizdrill.services.sheets import RESPONSES_HEADER
from tests.conftest import NOW, question_row, seed_questions

SHEET = "Responses"


def add_response(store, ts, user_id="s01", qid="1", correct=True):
    store.append_row(SHEET, [ts if isinstance(ts, str) else ts.isoformat(), user_id, qid, "A", correct, 1000, "pc"])


@pytest.fixture
def responses(store):
    store.ensure_header(SHEET, RESPONSES_HEADER)
    return store


@pytest.fixture
def reader(responses, open_gate, settings):
    return ProgressReader(responses, open_gate, settings, clock=lambda: NOW)


def test_summary_counts_only_todays_rows_for_user(responses, reader):
    add_response(responses, NOW - timedelta(hours=1), correct=True)
    add_response(responses, NOW - timedelta(hours=2), correct=False)
    add_response(responses, NOW - timedelta(hours=3), correct="TRUE")
    add_response(responses, NOW - timedelta(days=1), correct=True)
    add_response(responses, NOW, user_id="s02", correct=True)
    add_response(responses, "not a date", correct=True)
    responses.append_row(SHEET, [1e20, "s01", "1", "A", True, "", ""])
    assert reader.today_summary("s01") == {"done": 3, "corrects": 2, "date": "2026-10-18"}
    assert reader.today_summary("s02") == {"done": 1, "corrects": 1, "date": "2026-10-18"}
    assert reader.today_summary("nobody") == {"done": 0, "corrects": 0, "date": "2026-10-18"}


def test_summary_uses_fixed_time_zone(responses, reader):
    # 05:00 on the 18th in Tokyo
    add_response(responses, datetime(2026, 10, 17, 20, 0, tzinfo=timezone.utc))
    # 01:00 on the 19th in Tokyo
    add_response(responses, datetime(2026, 10, 18, 16, 0, tzinfo=timezone.utc))
    # naive values are read as Tokyo time
    add_response(responses, "2026-10-18T00:30:00", correct=1)
    assert reader.today_summary("s01") == {"done": 2, "corrects": 2, "date": "2026-10-18"}


def test_summary_requires_header_columns(store, open_gate, settings):
    store.ensure_sheet(SHEET)
    store.set_row(SHEET, 1, ["timestamp", "user_id"])
    reader = ProgressReader(store, open_gate, settings, clock=lambda: NOW)
    with pytest.raises(SchemaError, match="correct"):
        reader.today_summary("s01")


def test_summary_gate_checked(responses, settings):
    reader = ProgressReader(responses, AllowListGate(["s01"]), settings, clock=lambda: NOW)
    with pytest.raises(ForbiddenError):
        reader.today_summary("s02")


def test_overlay_marks_attempted_cells(responses, reader):
    seed_questions(responses, [question_row(q) for q in ("q3", "q1", "q2", "10", "9", "")])
    add_response(responses, NOW, qid="q2", correct=False)
    add_response(responses, NOW, qid="10")
    add_response(responses, NOW - timedelta(days=1), qid="q1")
    add_response(responses, NOW, qid="unknown")
    add_response(responses, NOW, user_id="s02", qid="9")
    result = reader.pixel_overlay_today("s01")
    assert (result["ok"], result["cols"], result["rows"]) == (True, 16, 15)
    assert len(result["levels"]) == 240
    # lexical order: "10", "9", "q1", "q2", "q3"
    assert [i for i, v in enumerate(result["levels"]) if v] == [0, 3]


def test_overlay_drops_qids_beyond_capacity(responses, open_gate):
    settings = Settings(_env_file=None, OVERLAY_COLS=2, OVERLAY_ROWS=1)
    reader = ProgressReader(responses, open_gate, settings, clock=lambda: NOW)
    seed_questions(responses, [question_row(q) for q in ("a", "b", "c")])
    add_response(responses, NOW, qid="c")
    add_response(responses, NOW, qid="a")
    assert reader.pixel_overlay_today("s01") == {"ok": True, "cols": 2, "rows": 1, "levels": [1, 0]}
