"""
Persistence collaborator
Storage-agnostic CRUD over pydantic records, with in-memory and JSON-file backends
"""

import json
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from models.errors import CollaboratorUnavailable
from utils.logging import logger


RecordT = TypeVar("RecordT", bound=BaseModel)

RecordFilter = Callable[[BaseModel], bool]


def server_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _encode_value(value):
    """json.dump fallback for stored documents; Decimals keep every digit"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


class Repository(ABC, Generic[RecordT]):
    """
    create(record) -> id, read(id) -> record | None, update(id, record) -> bool,
    delete(id) -> bool, list(filter) -> records

    The store owns `id`, `created_at` and `updated_at`.
    """

    def __init__(self, model: Type[RecordT], name: str = None):
        self.model = model
        self.name = name or model.__name__

    @abstractmethod
    def create(self, record: RecordT, record_id: Optional[str] = None) -> str:
        ...

    @abstractmethod
    def read(self, record_id: str) -> Optional[RecordT]:
        ...

    @abstractmethod
    def update(self, record_id: str, record: RecordT) -> bool:
        ...

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        ...

    @abstractmethod
    def list(self, filter: Optional[RecordFilter] = None) -> List[RecordT]:
        ...

    def _stamp_new(self, record: RecordT, record_id: str) -> RecordT:
        now = server_timestamp()
        return record.model_copy(update={"id": record_id, "created_at": now, "updated_at": now})

    def _stamp_update(self, record: RecordT, record_id: str, created_at) -> RecordT:
        return record.model_copy(update={
            "id": record_id,
            "created_at": created_at,
            "updated_at": server_timestamp(),
        })

    @staticmethod
    def _sort_newest_first(records: List[RecordT]) -> List[RecordT]:
        return sorted(records, key=lambda r: str(getattr(r, "created_at", "") or ""), reverse=True)


class InMemoryRepository(Repository[RecordT]):
    """Dict-backed store for tests and the desktop bridge"""

    def __init__(self, model: Type[RecordT], name: str = None):
        super().__init__(model, name)
        self._records: Dict[str, RecordT] = {}
        self._lock = threading.Lock()

    def create(self, record: RecordT, record_id: Optional[str] = None) -> str:
        record_id = record_id or uuid.uuid4().hex
        with self._lock:
            self._records[record_id] = self._stamp_new(record, record_id)
        return record_id

    def read(self, record_id: str) -> Optional[RecordT]:
        return self._records.get(record_id)

    def update(self, record_id: str, record: RecordT) -> bool:
        with self._lock:
            existing = self._records.get(record_id)
            if existing is None:
                return False
            self._records[record_id] = self._stamp_update(record, record_id, existing.created_at)
        return True

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def list(self, filter: Optional[RecordFilter] = None) -> List[RecordT]:
        records = list(self._records.values())
        if filter is not None:
            records = [r for r in records if filter(r)]
        return self._sort_newest_first(records)


class JsonFileRepository(Repository[RecordT]):
    """
    One JSON document per collection

    Writes go to a temp file that replaces the original, so a failed write
    leaves the previous contents untouched.
    """

    def __init__(self, model: Type[RecordT], path: str, name: str = None):
        super().__init__(model, name)
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.log_error("storage_read_failed", {"store": self.name, "path": str(self.path), "error": str(e)})
            raise CollaboratorUnavailable(self.name, f"cannot read {self.path}: {e}") from e

    def _save(self, documents: Dict[str, dict]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(documents, f, indent=2, ensure_ascii=False, default=_encode_value)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.log_error("storage_write_failed", {"store": self.name, "path": str(self.path), "error": str(e)})
            raise CollaboratorUnavailable(self.name, f"cannot write {self.path}: {e}") from e

    def _to_document(self, record: RecordT) -> dict:
        # Money stays a Decimal here and is written as a string
        return record.model_dump(mode="python", by_alias=True)

    def _from_document(self, document: dict) -> RecordT:
        return self.model.model_validate(document)

    def create(self, record: RecordT, record_id: Optional[str] = None) -> str:
        record_id = record_id or uuid.uuid4().hex
        with self._lock:
            documents = self._load()
            documents[record_id] = self._to_document(self._stamp_new(record, record_id))
            self._save(documents)
        return record_id

    def read(self, record_id: str) -> Optional[RecordT]:
        document = self._load().get(record_id)
        if document is None:
            return None
        return self._from_document(document)

    def update(self, record_id: str, record: RecordT) -> bool:
        with self._lock:
            documents = self._load()
            existing = documents.get(record_id)
            if existing is None:
                return False
            created_at = existing.get("createdAt", existing.get("created_at"))
            documents[record_id] = self._to_document(self._stamp_update(record, record_id, created_at))
            self._save(documents)
        return True

    def delete(self, record_id: str) -> bool:
        with self._lock:
            documents = self._load()
            if documents.pop(record_id, None) is None:
                return False
            self._save(documents)
        return True

    def list(self, filter: Optional[RecordFilter] = None) -> List[RecordT]:
        records = [self._from_document(d) for d in self._load().values()]
        if filter is not None:
            records = [r for r in records if filter(r)]
        return self._sort_newest_first(records)


def build_repository(model: Type[RecordT], storage_config: dict, collection: str) -> Repository[RecordT]:
    """Pick a backend from the `storage` config section"""

    backend = (storage_config or {}).get("backend", "memory")

    if backend == "memory":
        return InMemoryRepository(model, name=collection)
    if backend == "json":
        data_dir = Path(storage_config.get("path", "./data/store"))
        return JsonFileRepository(model, str(data_dir / f"{collection}.json"), name=collection)

    raise ValueError(f"Unknown storage backend: {backend}")
