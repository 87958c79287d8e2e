"""
Allow-list authorization gate.

User ids arrive from hand-typed forms, so both the configured list and the
request value are normalized before an exact match.
"""
import logging
import re
from functools import lru_cache
from typing import Iterable, List

from quizdrill.core.config import get_settings
from quizdrill.core.errors import ForbiddenError

logger = logging.getLogger(__name__)

_INVISIBLE = re.compile("[\u200b-\u200d\ufeff]")
_FULL_WIDTH = re.compile("[\uff01-\uff5e]")
_FULL_WIDTH_OFFSET = 0xFEE0

FORBIDDEN_MESSAGE = "FORBIDDEN: user_id is not allowed (hint: check full-width digits/#)"


def normalize_user_id(value) -> str:
    s = "" if value is None else str(value)
    s = _INVISIBLE.sub("", s)
    s = _FULL_WIDTH.sub(lambda m: chr(ord(m.group(0)) - _FULL_WIDTH_OFFSET), s)
    s = s.replace("\u3000", " ")
    return s.strip()


def parse_allow_list(raw: str) -> List[str]:
    entries = (normalize_user_id(line) for line in (raw or "").splitlines())
    return [e for e in entries if e and not e.startswith("#")]


class AllowListGate:
    """Boolean predicate over user ids; an empty list allows everyone."""

    def __init__(self, allowed: Iterable[str]):
        self.allowed = frozenset(allowed)

    @classmethod
    def from_text(cls, raw: str) -> "AllowListGate":
        return cls(parse_allow_list(raw))

    def is_allowed(self, user_id) -> bool:
        if not self.allowed:
            return True
        return normalize_user_id(user_id) in self.allowed

    def require(self, user_id) -> None:
        if not self.is_allowed(user_id):
            logger.warning(f"Rejected user_id {user_id!r}")
            raise ForbiddenError(FORBIDDEN_MESSAGE)


@lru_cache()
def get_gate() -> AllowListGate:
    return AllowListGate.from_text(get_settings().USER_ALLOW_LIST)
