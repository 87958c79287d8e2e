"""
Question ordering engine.

Turns the flat Questions sheet into a delivery sequence, either a uniform
shuffle or a deterministic order that keeps multi-step groups together.
"""
import logging
import math
import random
import re
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from quizdrill.core.auth import AllowListGate
from quizdrill.core.config import Settings
from quizdrill.services.sheets import SheetStore, cell_text, header_index_map

logger = logging.getLogger(__name__)

CHOICE_LETTERS = ("A", "B", "C", "D")
QUESTION_COLUMNS = [
    "qid", "grade", "domain", "skill", "stem", "choices", "correct",
    "distractor_reason_A", "distractor_reason_B", "distractor_reason_C", "distractor_reason_D",
    "assets", "difficulty", "tags",
]
DEFAULT_DIFFICULTY = 2

_GROUP = re.compile(r"(?:^|\|)group:([^|]+)")
_STEP = re.compile(r"(?:^|\|)step:(\d+)")
_DECIMAL_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_RADIX_NUMBER = re.compile(r"0([xXoObB])([0-9a-fA-F]+)")
_RADIX_BASES = {"x": 16, "o": 8, "b": 2}


@dataclass
class Question:
    qid: str
    grade: str
    domain: str
    skill: str
    stem: str
    choices: List[str]
    correct: str
    reasons: Dict[str, str]
    assets: str
    difficulty: int
    tags: str
    group: str = ""
    step: Optional[int] = None

    def is_eligible(self) -> bool:
        return (
            len(self.choices) == 4
            and all(c != "" for c in self.choices)
            and self.correct in CHOICE_LETTERS
            and self.qid != ""
        )


def parse_group_step(tags: Any) -> Tuple[str, Optional[int]]:
    text = cell_text(tags)
    g = _GROUP.search(text)
    s = _STEP.search(text)
    return (g.group(1) if g else ""), (int(s.group(1)) if s else None)


def numeric_qid(qid: str) -> Optional[float]:
    """Read a qid as a number using JavaScript ``Number()`` rules, else None.

    Blank text is 0, 0x/0o/0b prefixes are allowed, digit separators are not.
    """
    text = cell_text(qid).strip()
    if text == "":
        return 0.0
    radix = _RADIX_NUMBER.fullmatch(text)
    if radix:
        try:
            return float(int(radix.group(2), _RADIX_BASES[radix.group(1).lower()]))
        except (OverflowError, ValueError):
            return None
    if not _DECIMAL_NUMBER.fullmatch(text):
        return None
    n = float(text)
    return n if math.isfinite(n) else None


def _number_text(n: float) -> str:
    """Shortest round-trip text for n, laid out like JavaScript's Number#toString."""
    if n == 0:
        return "0"
    sign = "-" if n < 0 else ""
    _, digits, exp = Decimal(repr(abs(n))).normalize().as_tuple()
    d = "".join(map(str, digits))
    k, point = len(d), len(d) + exp
    if k <= point <= 21:
        return sign + d + "0" * (point - k)
    if 0 < point <= 21:
        return sign + d[:point] + "." + d[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + d
    e = point - 1
    mantissa = d if k == 1 else d[0] + "." + d[1:]
    return f"{sign}{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"


def qid_sort_key(qid: str) -> Tuple[int, float, str]:
    # numeric ids first, compared as numbers; the rest compared as text
    n = numeric_qid(qid)
    return (0, n, "") if n is not None else (1, 0.0, qid)


def sequential_key(q: Question) -> Tuple[str, int, Tuple[int, float, str]]:
    """Composite key: group-or-qid label, then step, then qid.

    The label is compared as a plain string, so "G:..." and "Q:..." labels share
    one key space and numeric qids compare by their text ("Q:10" < "Q:5").
    """
    if q.group:
        label = "G:" + q.group
    else:
        n = numeric_qid(q.qid)
        label = "Q:" + (_number_text(n) if n is not None else q.qid)
    return label, (q.step if q.step is not None else 0), qid_sort_key(q.qid)


def order_sequential(pool: List[Question]) -> List[Question]:
    return sorted(pool, key=sequential_key)


def shuffle(pool: List[Question], rng: random.Random) -> List[Question]:
    # Random.shuffle is an in-place Fisher-Yates pass
    rng.shuffle(pool)
    return pool


def clamp_limit(raw: Any, default: int = 5, maximum: int = 50) -> int:
    if raw is None or raw == "":
        return default
    try:
        n = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(n):
        return default
    return max(1, min(maximum, math.floor(n)))


def _difficulty(value: Any) -> int:
    try:
        return int(float(value)) if cell_text(value).strip() else DEFAULT_DIFFICULTY
    except ValueError:
        return DEFAULT_DIFFICULTY


def _cell(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if idx < len(row) else None


def question_from_row(row: Sequence[Any], cols: Dict[str, int]) -> Question:
    get = lambda name: cell_text(_cell(row, cols[name]))
    choices = [c.strip() for c in get("choices").split("|")][:4]
    group, step = parse_group_step(get("tags"))
    return Question(
        qid=get("qid"),
        grade=get("grade"),
        domain=get("domain"),
        skill=get("skill"),
        stem=get("stem"),
        choices=choices,
        correct=get("correct").upper(),
        reasons={k: get(f"distractor_reason_{k}") for k in CHOICE_LETTERS},
        assets=get("assets"),
        difficulty=_difficulty(_cell(row, cols["difficulty"])),
        tags=get("tags"),
        group=group,
        step=step,
    )


@dataclass
class QuestionOrderingService:
    store: SheetStore
    gate: AllowListGate
    settings: Settings
    rng: random.Random = field(default_factory=random.Random)

    def get_domains(self) -> List[str]:
        values = self.store.get_values(self.settings.QUESTIONS_SHEET)
        header, rows = (values[0], values[1:]) if values else ([], [])
        idx = header_index_map(header, ["domain"], self.settings.QUESTIONS_SHEET)["domain"]
        domains = {cell_text(_cell(r, idx)).strip() for r in rows}
        domains.discard("")
        return sorted(domains, key=lambda d: (unicodedata.normalize("NFKC", d).casefold(), d))

    def load_pool(self, domain: str = "") -> List[Question]:
        values = self.store.get_values(self.settings.QUESTIONS_SHEET)
        header, rows = (values[0], values[1:]) if values else ([], [])
        cols = header_index_map(header, QUESTION_COLUMNS, self.settings.QUESTIONS_SHEET)
        pool = []
        for row in rows:
            if domain and cell_text(_cell(row, cols["domain"])).strip() != domain:
                continue
            q = question_from_row(row, cols)
            if q.is_eligible():
                pool.append(q)
        logger.debug(f"Loaded {len(pool)} eligible of {len(rows)} rows (domain={domain!r})")
        return pool

    def get_questions(self, domain: str = "", user_id: str = "", order: str = "random",
                      limit: Any = None) -> List[Question]:
        self.gate.require(user_id)
        n = clamp_limit(limit, self.settings.DEFAULT_LIMIT, self.settings.MAX_LIMIT)
        pool = self.load_pool(domain or "")
        if order == "sequential":
            pool = order_sequential(pool)
        else:
            pool = shuffle(pool, self.rng)
        return pool[:n]
