"""
Daily summary and the "attempted today" progress map.

Both re-scan the whole Responses sheet without locking. "Today" is always the
calendar day in ``TIME_ZONE``, whatever zone an event was recorded in.
"""
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterator, List, Optional
from zoneinfo import ZoneInfo

from quizdrill.core.auth import AllowListGate
from quizdrill.core.config import Settings
from quizdrill.services.event_log import parse_timestamp
from quizdrill.services.sheets import SheetStore, cell_text, header_index_map

TRUTHY = ("TRUE", "1")


class ProgressReader:
    def __init__(self, store: SheetStore, gate: AllowListGate, settings: Settings,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.gate = gate
        self.settings = settings
        self.tz = ZoneInfo(settings.TIME_ZONE)
        self.clock = clock or (lambda: datetime.now(self.tz))

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    def _todays_rows(self, user_id: Any, columns: List[str]) -> Iterator[Dict[str, Any]]:
        sheet = self.settings.RESPONSES_SHEET
        values = self.store.get_values(sheet)
        header, rows = (values[0], values[1:]) if values else ([], [])
        cols = header_index_map(header, columns, sheet)
        today, uid = self.today(), cell_text(user_id)
        for row in rows:
            cell = lambda name: row[cols[name]] if cols[name] < len(row) else None
            if cell_text(cell("user_id")) != uid:
                continue
            ts = parse_timestamp(cell("timestamp"), self.tz)
            if ts is None or ts.astimezone(self.tz).date() != today:
                continue
            yield {name: cell(name) for name in columns}

    def today_summary(self, user_id: Any) -> Dict[str, Any]:
        self.gate.require(user_id)
        done = corrects = 0
        for row in self._todays_rows(user_id, ["timestamp", "user_id", "correct"]):
            done += 1
            if cell_text(row["correct"]).upper() in TRUTHY:
                corrects += 1
        return {"done": done, "corrects": corrects, "date": self.today().isoformat()}

    def qid_positions(self) -> Dict[str, int]:
        sheet = self.settings.QUESTIONS_SHEET
        values = self.store.get_values(sheet)
        header, rows = (values[0], values[1:]) if values else ([], [])
        idx = header_index_map(header, ["qid"], sheet)["qid"]
        qids = sorted(q for q in (cell_text(r[idx]) if idx < len(r) else "" for r in rows) if q)
        return {q: i for i, q in enumerate(qids)}

    def pixel_overlay_today(self, user_id: Any) -> Dict[str, Any]:
        self.gate.require(user_id)
        cols, rows = self.settings.OVERLAY_COLS, self.settings.OVERLAY_ROWS
        total = cols * rows
        levels = [0] * total

        positions = self.qid_positions()
        for row in self._todays_rows(user_id, ["timestamp", "user_id", "qid"]):
            p = positions.get(cell_text(row["qid"]))
            if p is not None and p < total:
                levels[p] = 1
        return {"ok": True, "cols": cols, "rows": rows, "levels": levels}
