from datetime import datetime
from typing import Any, List

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase): pass


class Sheet(Base):
    __tablename__ = "sheets"
    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())


class SheetRow(Base):
    __tablename__ = "sheet_rows"
    __table_args__ = (UniqueConstraint("sheet", "row_no", name="uq_sheet_row"),)
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    sheet: Mapped[str] = mapped_column(String(64), ForeignKey("sheets.name"), index=True)
    row_no: Mapped[int] = mapped_column(Integer)  # 1-based, row 1 is the header
    cells: Mapped[List[Any]] = mapped_column(JSON)
