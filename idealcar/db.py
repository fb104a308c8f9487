import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generic, Iterable, Optional, Protocol, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from idealcar.models import BlogPost, Dealer, Record, StoredCollection, Vehicle
from idealcar.seed import seed_for

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class RecordStore(Protocol):
    """Durable home of whole collections, keyed by kind."""

    def load(self, kind: str) -> list[dict]: ...

    def save(self, kind: str, records: list[dict]) -> None: ...


def _unwrap(kind: str, data) -> list[dict]:
    """Accept the versioned envelope or a legacy bare array."""
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        raise ValueError(f"{kind}: expected an object or array")
    version = data.get("schemaVersion")
    if version != SCHEMA_VERSION:
        raise ValueError(f"{kind}: unsupported schema version {version!r}")
    records = data.get("records")
    if not isinstance(records, list):
        raise ValueError(f"{kind}: 'records' must be an array")
    return records


class JsonFileStore:
    """One pretty-printed JSON file per collection."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def path_for(self, kind: str) -> Path:
        return self.data_dir / f"{kind}.json"

    def load(self, kind: str) -> list[dict]:
        path = self.path_for(kind)
        if not path.exists():
            logger.info("No %s file at %s, using seed data", kind, path)
            return seed_for(kind)
        try:
            return _unwrap(kind, json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.error("Could not read %s, using seed data: %s", path, e)
            return seed_for(kind)

    def save(self, kind: str, records: list[dict]) -> None:
        path = self.path_for(kind)
        envelope = {"schemaVersion": SCHEMA_VERSION, "kind": kind, "records": records}
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError) as e:
            logger.error("Failed to save %s to %s: %s", kind, path, e)


class SqlRecordStore:
    """Same contract as JsonFileStore, kept in an embedded SQL database."""

    def __init__(self, engine):
        self.engine = engine
        SQLModel.metadata.create_all(engine, tables=[StoredCollection.__table__])

    @classmethod
    def from_url(cls, url: str) -> "SqlRecordStore":
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        )
        return cls(engine)

    def load(self, kind: str) -> list[dict]:
        try:
            with Session(self.engine) as s:
                row = s.get(StoredCollection, kind)
                if row is None:
                    logger.info("No stored %s collection, using seed data", kind)
                    return seed_for(kind)
                if row.schema_version != SCHEMA_VERSION:
                    raise ValueError(f"unsupported schema version {row.schema_version!r}")
                records = json.loads(row.payload)
                if not isinstance(records, list):
                    raise ValueError("payload is not an array")
                return records
        except (SQLAlchemyError, ValueError) as e:
            logger.error("Could not read %s collection, using seed data: %s", kind, e)
            return seed_for(kind)

    def save(self, kind: str, records: list[dict]) -> None:
        try:
            with Session(self.engine) as s:
                row = s.get(StoredCollection, kind) or StoredCollection(kind=kind)
                row.schema_version = SCHEMA_VERSION
                row.payload = json.dumps(records, ensure_ascii=False)
                row.updated_at = datetime.now(timezone.utc).isoformat()
                s.add(row)
                s.commit()
        except (SQLAlchemyError, TypeError) as e:
            logger.error("Failed to save %s collection: %s", kind, e)


def build_store(settings) -> RecordStore:
    if settings.STORE_BACKEND == "sqlite":
        return SqlRecordStore.from_url(settings.DATABASE_URL)
    if settings.STORE_BACKEND != "json":
        raise ValueError(f"Unknown STORE_BACKEND {settings.STORE_BACKEND!r}")
    return JsonFileStore(settings.DATA_DIR)


T = TypeVar("T", bound=Record)


class Collection(Generic[T]):
    """In-memory list of one record kind, flushed wholesale on every change.

    Nothing here locks: two writers that interleave both persist their
    own full snapshot and the later one wins.
    """

    def __init__(self, kind: str, model: type[T], store: RecordStore,
                 clock: Callable[[], float] = time.time):
        self.kind = kind
        self.model = model
        self.store = store
        self.clock = clock
        self.records: list[T] = list(self._validate(store.load(kind)))
        self._last_id = max((r.id for r in self.records), default=0)

    def _validate(self, raw: Iterable[dict]) -> Iterable[T]:
        for item in raw:
            try:
                yield self.model.model_validate(item)
            except ValidationError as e:
                logger.warning("Skipping unreadable %s record %r: %s",
                               self.kind, item.get("id") if isinstance(item, dict) else item,
                               e.errors()[0]["msg"])

    def all(self) -> list[T]:
        return list(self.records)

    def get(self, record_id: int) -> Optional[T]:
        return next((r for r in self.records if r.id == record_id), None)

    def where(self, predicate: Callable[[T], bool]) -> list[T]:
        return [r for r in self.records if predicate(r)]

    def next_id(self) -> int:
        # millisecond timestamps, bumped so two creates in one ms differ
        candidate = int(self.clock() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    def add(self, record: T) -> T:
        self.records.append(record)
        self.save()
        return record

    def replace(self, record: T) -> T:
        for i, existing in enumerate(self.records):
            if existing.id == record.id:
                self.records[i] = record
                break
        else:
            raise KeyError(record.id)
        self.save()
        return record

    def remove(self, record_id: int) -> Optional[T]:
        record = self.get(record_id)
        if record is None:
            return None
        self.records = [r for r in self.records if r.id != record_id]
        self.save()
        return record

    def save(self) -> None:
        self.store.save(self.kind, [r.to_json() for r in self.records])


class Collections:
    """The three collections the API serves, loaded from one store."""

    def __init__(self, store: RecordStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.vehicles: Collection[Vehicle] = Collection("vehicles", Vehicle, store, clock)
        self.blog_posts: Collection[BlogPost] = Collection("blog_posts", BlogPost, store, clock)
        self.dealers: Collection[Dealer] = Collection("dealers", Dealer, store, clock)
