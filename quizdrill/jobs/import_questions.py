"""
Append questions from a CSV file to the Questions sheet.

    python -m quizdrill.jobs.import_questions questions.csv

The CSV needs a header row using the Questions column names. Columns are
written in the sheet's header order; unknown CSV columns are ignored.
"""
import argparse
import csv
import logging
from typing import IO, List

from quizdrill.core.config import get_settings
from quizdrill.services.ordering import QUESTION_COLUMNS
from quizdrill.services.sheets import SheetStore, cell_text, get_store

logger = logging.getLogger(__name__)


def import_questions(store: SheetStore, sheet: str, fh: IO[str]) -> int:
    store.ensure_sheet(sheet)
    header: List[str] = [cell_text(h) for h in store.get_header(sheet)]
    if not any(header):
        header = list(QUESTION_COLUMNS)
        store.set_row(sheet, 1, header)
    count = 0
    for record in csv.DictReader(fh):
        if not any((v or "").strip() for v in record.values() if isinstance(v, str)):
            continue
        store.append_row(sheet, [(record.get(col) or "").strip() for col in header])
        count += 1
    logger.info(f"Imported {count} rows into {sheet}")
    return count


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("csv_path")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    settings = get_settings()
    with open(args.csv_path, newline="", encoding="utf-8-sig") as fh:
        import_questions(get_store(), settings.QUESTIONS_SHEET, fh)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
