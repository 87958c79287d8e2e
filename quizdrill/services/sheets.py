"""
Row-oriented tabular store.

Each sheet is an ordered list of JSON rows addressed by a 1-based row number.
Row 1 holds the header, data starts at row 2. Only appends and header rewrites
are supported; data rows are never updated or deleted.
"""
import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Sequence

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from quizdrill.core.database import get_engine, make_session_factory
from quizdrill.core.errors import SchemaError
from quizdrill.models.orm import Base, Sheet, SheetRow

logger = logging.getLogger(__name__)

Row = List[Any]

RESPONSES_HEADER = ["timestamp", "user_id", "qid", "chosen", "correct", "elapsed_ms", "device"]


def cell_text(value: Any) -> str:
    return "" if value is None else str(value)


def header_index_map(header: Sequence[Any], names: Iterable[str], sheet: str = "sheet") -> Dict[str, int]:
    """Map each required column name to its index, or raise SchemaError."""
    labels = [cell_text(h) for h in header]
    index = {}
    for name in names:
        if name not in labels:
            raise SchemaError(f"{sheet} header is missing column: {name}")
        index[name] = labels.index(name)
    return index


class SheetStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def has_sheet(self, name: str) -> bool:
        with self.session_factory() as db:
            return db.get(Sheet, name) is not None

    def ensure_sheet(self, name: str) -> None:
        if self.has_sheet(name):
            return
        with self.session_factory() as db:
            db.add(Sheet(name=name))
            try:
                db.commit()
            except IntegrityError:
                # created concurrently by another writer
                db.rollback()
                return
            logger.info(f"Created sheet {name}")

    def require_sheet(self, name: str) -> None:
        if not self.has_sheet(name):
            raise SchemaError(f"{name} sheet not found")

    def last_row(self, name: str) -> int:
        with self.session_factory() as db:
            return db.scalar(select(func.coalesce(func.max(SheetRow.row_no), 0)).where(SheetRow.sheet == name)) or 0

    def get_values(self, name: str) -> List[Row]:
        self.require_sheet(name)
        with self.session_factory() as db:
            rows = db.scalars(select(SheetRow).where(SheetRow.sheet == name).order_by(SheetRow.row_no)).all()
            return [list(r.cells or []) for r in rows]

    def get_rows(self, name: str, start: int, count: int) -> List[Row]:
        with self.session_factory() as db:
            rows = db.scalars(
                select(SheetRow)
                .where(SheetRow.sheet == name, SheetRow.row_no >= start, SheetRow.row_no < start + count)
                .order_by(SheetRow.row_no)
            ).all()
            return [list(r.cells or []) for r in rows]

    def get_header(self, name: str) -> Row:
        rows = self.get_rows(name, 1, 1)
        return rows[0] if rows else []

    def _find_row(self, db, name: str, row_no: int):
        return db.scalar(select(SheetRow).where(SheetRow.sheet == name, SheetRow.row_no == row_no))

    def set_row(self, name: str, row_no: int, cells: Sequence[Any]) -> None:
        with self.session_factory() as db:
            row = self._find_row(db, name, row_no)
            if row is None:
                db.add(SheetRow(sheet=name, row_no=row_no, cells=list(cells)))
                try:
                    db.commit()
                    return
                except IntegrityError:
                    db.rollback()
                    row = self._find_row(db, name, row_no)
            row.cells = list(cells)
            db.commit()

    def append_row(self, name: str, cells: Sequence[Any]) -> int:
        with self.session_factory() as db:
            last = db.scalar(select(func.coalesce(func.max(SheetRow.row_no), 0)).where(SheetRow.sheet == name)) or 0
            db.add(SheetRow(sheet=name, row_no=last + 1, cells=list(cells)))
            db.commit()
            return last + 1

    def ensure_header(self, name: str, header: Sequence[str]) -> bool:
        """Create the sheet if needed and rewrite row 1 when it does not match.

        Returns True when the header had to be rewritten. Data rows are left
        as they are.
        """
        self.ensure_sheet(name)
        current = self.get_header(name)
        mismatch = any(
            cell_text(current[i] if i < len(current) else "").strip() != h for i, h in enumerate(header)
        )
        if mismatch:
            merged = list(header) + list(current[len(header):])
            self.set_row(name, 1, merged)
            logger.info(f"Rewrote {name} header")
        return mismatch


def init_store(engine: Engine) -> SheetStore:
    Base.metadata.create_all(bind=engine)
    return SheetStore(make_session_factory(engine))


@lru_cache()
def get_store() -> SheetStore:
    return init_store(get_engine())
