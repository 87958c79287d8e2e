from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from quizdrill.core.auth import AllowListGate
from quizdrill.core.cache import LocalAppendLock, MemoryDedupCache
from quizdrill.core.config import Settings
from quizdrill.core.database import make_engine
from quizdrill.services.ordering import QUESTION_COLUMNS
from quizdrill.services.sheets import init_store

JST = ZoneInfo("Asia/Tokyo")
NOW = datetime(2026, 10, 18, 10, 0, 0, tzinfo=JST)


class FakeTimer:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def question_row(qid, domain="たし算", choices="1|2|3|4", correct="A", tags="", difficulty="2", grade="3"):
    values = {
        "qid": qid, "grade": grade, "domain": domain, "skill": "add", "stem": f"stem {qid}",
        "choices": choices, "correct": correct,
        "distractor_reason_A": "ra", "distractor_reason_B": "rb",
        "distractor_reason_C": "rc", "distractor_reason_D": "rd",
        "assets": "", "difficulty": difficulty, "tags": tags,
    }
    return [values[c] for c in QUESTION_COLUMNS]


def seed_questions(store, rows, sheet="Questions", header=None):
    store.ensure_sheet(sheet)
    store.set_row(sheet, 1, header or QUESTION_COLUMNS)
    for row in rows:
        store.append_row(sheet, row)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def store(tmp_path):
    return init_store(make_engine(f"sqlite:///{tmp_path / 'quizdrill.db'}"))


@pytest.fixture
def open_gate():
    return AllowListGate([])


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def dedup_cache(timer):
    return MemoryDedupCache(ttl_ms=2000, timer=timer)


@pytest.fixture
def append_lock():
    return LocalAppendLock(wait_ms=200)
