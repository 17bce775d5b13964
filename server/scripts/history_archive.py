from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from cursorcalc.core.config import AppSettings
from cursorcalc.db.base import Base
from cursorcalc.models.history import HistoryEntry
from cursorcalc.services.history_sql import SqlHistoryStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("history_archive")

DEFAULT_SQLITE_DB_URL = "sqlite:///./data/sqlite/history.db"


class ArchiveRecord(BaseModel):
    id: str = Field(..., min_length=1)
    expression: str = Field(..., min_length=1)
    result: str = Field(..., min_length=1)
    timestamp: dt.datetime

    model_config = {"extra": "ignore"}

    @field_validator("timestamp")
    @classmethod
    def _require_timezone(cls, value: dt.datetime) -> dt.datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value

    def to_entry(self) -> HistoryEntry:
        return HistoryEntry(
            id=self.id,
            expression=self.expression,
            result=self.result,
            timestamp=self.timestamp,
        )


@dataclass
class ImportResult:
    inserted: int = 0
    skipped: int = 0


def _default_db_url() -> str:
    settings = AppSettings()
    backend = (settings.history_backend or "sqlite").strip().lower()
    if backend == "postgres":
        postgres_url = (settings.history_postgres_url or "").strip()
        if postgres_url:
            return postgres_url
        raise ValueError("HISTORY_POSTGRES_URL must be set when HISTORY_BACKEND=postgres.")
    return (settings.history_sqlite_url or DEFAULT_SQLITE_DB_URL).strip()


def _prepare_store(db_url: str, session_key: str) -> SqlHistoryStore:
    kwargs: dict[str, object] = {}
    url = make_url(db_url)
    if url.drivername.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(db_url, **kwargs)
    Base.metadata.create_all(engine)
    return SqlHistoryStore(sessionmaker(bind=engine, autoflush=False, autocommit=False), session_key)


def read_records(path: Path) -> List[ArchiveRecord]:
    if not path.exists():
        raise FileNotFoundError(f"Archive file not found at {path}")

    records: list[ArchiveRecord] = []
    with path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(ArchiveRecord.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as exc:
                raise ValueError(f"Invalid history record on line {line_number}: {exc}") from exc
    return records


def export_history(store: SqlHistoryStore, output: Path) -> int:
    entries = list(reversed(store.all()))
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as handle:
        for entry in entries:
            payload = {
                "id": entry.id,
                "expression": entry.expression,
                "result": entry.result,
                "timestamp": entry.timestamp.isoformat(),
            }
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
    logger.info("Exported %d history entries to %s", len(entries), output)
    return len(entries)


def import_history(store: SqlHistoryStore, records: Iterable[ArchiveRecord]) -> ImportResult:
    result = ImportResult()
    for record in sorted(records, key=lambda item: item.timestamp):
        if store.get(record.id) is not None:
            logger.debug("Skipping existing history entry %s", record.id)
            result.skipped += 1
            continue
        store.append(record.to_entry())
        result.inserted += 1
    logger.info("Imported %d history entries (%d skipped)", result.inserted, result.skipped)
    return result


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export or import calculator history as JSON lines.")
    parser.add_argument("command", choices=["export", "import"], help="Direction of the transfer.")
    parser.add_argument("--session", required=True, help="Session key whose history is transferred.")
    parser.add_argument(
        "--file",
        type=Path,
        default=Path("data/history/history.jsonl"),
        help="JSON-lines archive to write (export) or read (import).",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLAlchemy database URL for history (defaults to the configured backend).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    store = _prepare_store(args.db or _default_db_url(), args.session)
    if args.command == "export":
        export_history(store, args.file)
    else:
        import_history(store, read_records(args.file))


if __name__ == "__main__":
    main()
