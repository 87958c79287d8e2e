"""
Deduplicated, append-only answer log.

Clients retry, double-tap and replay, so one logical answer may arrive several
times, possibly concurrently. An event is recorded at most once per
fingerprint (user_id, qid, chosen) within a short window:

1. a best-effort expiring cache absorbs rapid repeats without locking;
2. under the global append lock, the newest ``DEDUP_SCAN_ROWS`` rows are
   scanned for the same fingerprint within ``DEDUP_WINDOW_MS``, and only if
   none is found is a row appended.

The locked scan is the source of truth. An identical answer given outside the
scan or time window is a new record: the same question may be answered again
later.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from quizdrill.core.auth import AllowListGate
from quizdrill.core.config import Settings
from quizdrill.services.sheets import RESPONSES_HEADER, SheetStore, cell_text, header_index_map

logger = logging.getLogger(__name__)

DEDUP_COLUMNS = ["timestamp", "user_id", "qid", "chosen"]


@dataclass
class AnswerEvent:
    user_id: str = ""
    qid: str = ""
    chosen: str = ""
    correct: Any = False
    elapsed_ms: Optional[int] = None
    device: Optional[str] = None
    timestamp: Optional[datetime] = None


def make_dup_key(user_id: Any, qid: Any, chosen: Any) -> str:
    return "|".join(["dup", cell_text(user_id), cell_text(qid), cell_text(chosen)])


def parse_timestamp(value: Any, tz: ZoneInfo) -> Optional[datetime]:
    """Read a stored or submitted timestamp; naive values are taken in ``tz``."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            dt = datetime.fromtimestamp(value / 1000.0, tz)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        try:
            dt = datetime.fromisoformat(cell_text(value).strip())
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt


class EventLogger:
    def __init__(self, store: SheetStore, gate: AllowListGate, cache, lock, settings: Settings,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.gate = gate
        self.cache = cache
        self.lock = lock
        self.settings = settings
        self.tz = ZoneInfo(settings.TIME_ZONE)
        self.clock = clock or (lambda: datetime.now(self.tz))

    @property
    def sheet(self) -> str:
        return self.settings.RESPONSES_SHEET

    def log_response(self, event: AnswerEvent) -> Dict[str, Any]:
        self.gate.require(event.user_id)

        ts = parse_timestamp(event.timestamp, self.tz) if event.timestamp is not None else None
        ts = ts or self.clock()

        fp = make_dup_key(event.user_id, event.qid, event.chosen)
        if self.cache.get(fp):
            logger.info(f"Deduped {fp} via cache")
            return {"ok": True, "deduped": True, "via": "cache"}

        with self.lock.hold():
            self.store.ensure_header(self.sheet, RESPONSES_HEADER)
            cols = header_index_map(self.store.get_header(self.sheet), DEDUP_COLUMNS, self.sheet)
            if self.has_recent_duplicate(cols, event, ts):
                logger.info(f"Deduped {fp} via store")
                return {"ok": True, "deduped": True, "via": "store"}

            self.store.append_row(self.sheet, [
                ts.isoformat(),
                event.user_id or "",
                event.qid or "",
                event.chosen or "",
                event.correct is True,
                event.elapsed_ms if event.elapsed_ms is not None else "",
                event.device or "",
            ])
            self.cache.put(fp)
            logger.info(f"Recorded {fp} at {ts.isoformat()}")
            return {"ok": True}

    def has_recent_duplicate(self, cols: Dict[str, int], event: AnswerEvent, ts: datetime) -> bool:
        """Scan the newest rows backwards for the same fingerprint within the window.

        Older matches are skipped and the scan continues; rows whose timestamp
        cannot be read never count as duplicates.
        """
        last = self.store.last_row(self.sheet)
        if last < 2:
            return False
        start = max(2, last - self.settings.DEDUP_SCAN_ROWS + 1)
        rows = self.store.get_rows(self.sheet, start, last - start + 1)

        wanted = (cell_text(event.user_id), cell_text(event.qid), cell_text(event.chosen))
        i_ts, i_uid, i_qid, i_chosen = (cols[c] for c in DEDUP_COLUMNS)
        for row in reversed(rows):
            cells = [cell_text(row[i]) if i < len(row) else "" for i in (i_uid, i_qid, i_chosen)]
            if tuple(cells) != wanted:
                continue
            row_ts = parse_timestamp(row[i_ts] if i_ts < len(row) else None, self.tz)
            if row_ts is None:
                continue
            if (ts - row_ts).total_seconds() * 1000 <= self.settings.DEDUP_WINDOW_MS:
                return True
        return False
