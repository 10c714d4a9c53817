"""Request Store: the single owner of the access-request collection.

Three backends share one contract:

* ``MemoryRequestStore`` keeps the collection in process.
* ``JsonFileRequestStore`` rewrites the whole collection to one JSON file on
  every mutation, inside a versioned envelope.
* ``SqlRequestStore`` keeps one row per request, keyed by a unique ``id``.

Reads never raise on a broken backend: they log and return an empty
collection. Writes raise ``PersistenceError`` instead of dropping data.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union
from uuid import uuid4

from pydantic import ValidationError as ModelValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..domain.errors import PersistenceError
from ..domain.models import AccessRequest, AccessRequestDraft, AccessRequestRow, enrollment_key, utcnow

logger = logging.getLogger(__name__)

ENVELOPE_VERSION = 1
IMMUTABLE_FIELDS = frozenset(
    {
        "id",
        "employer_id",
        "employer_name",
        "employer_email",
        "student_enrollment_id",
        "student_name",
        "purpose",
        "requested_fields",
        "created_at",
    }
)

Mutation = Union[Mapping[str, Any], Callable[[AccessRequest], Mapping[str, Any]]]


def new_request_id() -> str:
    return f"req_{uuid4().hex}"


def apply_mutation(record: AccessRequest, mutation: Mutation) -> AccessRequest:
    """Return ``record`` with ``mutation`` applied and re-validated."""
    changes = mutation(record) if callable(mutation) else mutation
    if not changes:
        return record
    frozen = IMMUTABLE_FIELDS.intersection(changes)
    if frozen:
        raise ValueError(f"cannot modify immutable fields: {', '.join(sorted(frozen))}")
    updated = AccessRequest.model_validate({**record.model_dump(), **dict(changes)})
    if record.status.is_terminal and not updated.status.is_terminal:
        raise ValueError(f"request {record.id} is {record.status.value} and cannot return to pending")
    return updated


class RequestStore(ABC):
    """Keyed collection of access requests; persistence only, no business rules."""

    def __init__(
        self,
        clock: Callable[[], Any] = utcnow,
        id_factory: Callable[[], str] = new_request_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._write_lock = threading.RLock()

    @abstractmethod
    def get_all(self) -> List[AccessRequest]:
        """Every request in insertion order."""

    def get(self, request_id: str) -> Optional[AccessRequest]:
        return next((r for r in self.get_all() if r.id == request_id), None)

    def get_by_employer(self, employer_id: str) -> List[AccessRequest]:
        return [r for r in self.get_all() if r.employer_id == employer_id]

    def get_by_student(self, student_enrollment_id: str) -> List[AccessRequest]:
        wanted = enrollment_key(student_enrollment_id)
        return [r for r in self.get_all() if enrollment_key(r.student_enrollment_id) == wanted]

    @abstractmethod
    def insert(self, draft: AccessRequestDraft) -> AccessRequest:
        """Persist a new request with a fresh id and creation time."""

    @abstractmethod
    def update(self, request_id: str, mutation: Mutation) -> Optional[AccessRequest]:
        """Apply ``mutation`` to one record; ``None`` when the id is unknown."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "RequestStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class _CollectionStore(RequestStore):
    """Whole-collection backends: every write rewrites the full sequence."""

    @abstractmethod
    def _load(self) -> List[AccessRequest]:
        ...

    @abstractmethod
    def _save(self, records: Sequence[AccessRequest]) -> None:
        ...

    def get_all(self) -> List[AccessRequest]:
        try:
            return self._load()
        except PersistenceError:
            logger.exception("request store unreadable; serving an empty collection")
            return []

    def insert(self, draft: AccessRequestDraft) -> AccessRequest:
        with self._write_lock:
            records = self._load()
            taken = {r.id for r in records}
            request_id = self._id_factory()
            while request_id in taken:
                request_id = self._id_factory()
            created = AccessRequest.from_draft(draft, request_id, self._clock())
            self._save([*records, created])
        logger.debug("stored request %s", created.id)
        return created

    def update(self, request_id: str, mutation: Mutation) -> Optional[AccessRequest]:
        with self._write_lock:
            records = self._load()
            for index, record in enumerate(records):
                if record.id == request_id:
                    break
            else:
                return None
            updated = apply_mutation(record, mutation)
            if updated is not record:
                records[index] = updated
                self._save(records)
            return updated


class MemoryRequestStore(_CollectionStore):
    def __init__(self, records: Sequence[AccessRequest] = (), **kwargs) -> None:
        super().__init__(**kwargs)
        self._records = tuple(records)

    def _load(self) -> List[AccessRequest]:
        return list(self._records)

    def _save(self, records: Sequence[AccessRequest]) -> None:
        self._records = tuple(records)


class JsonFileRequestStore(_CollectionStore):
    """Collection persisted as ``{"version": 1, "requests": [...]}``."""

    def __init__(self, path: Union[str, Path], **kwargs) -> None:
        super().__init__(**kwargs)
        self.path = Path(path)

    def _load(self) -> List[AccessRequest]:
        if not self.path.exists():
            return []
        try:
            document = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc

        # Bare lists predate the versioned envelope.
        if isinstance(document, list):
            items = document
        elif isinstance(document, dict) and isinstance(document.get("requests"), list):
            version = document.get("version")
            if version != ENVELOPE_VERSION:
                raise PersistenceError(f"unsupported store version {version!r} in {self.path}")
            items = document["requests"]
        else:
            raise PersistenceError(f"unrecognised store layout in {self.path}")

        try:
            return [AccessRequest.model_validate(item) for item in items]
        except ModelValidationError as exc:
            raise PersistenceError(f"corrupt request record in {self.path}: {exc}") from exc

    def _save(self, records: Sequence[AccessRequest]) -> None:
        payload = {
            "version": ENVELOPE_VERSION,
            "requests": [r.model_dump(mode="json") for r in records],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc


def _to_domain(row: AccessRequestRow) -> AccessRequest:
    return AccessRequest.model_validate(row)


class SqlRequestStore(RequestStore):
    """Per-record storage backed by SQLModel."""

    def __init__(self, engine: Engine, **kwargs) -> None:
        super().__init__(**kwargs)
        self.engine = engine

    def _read(self, stmt) -> List[AccessRequest]:
        try:
            with Session(self.engine) as session:
                return [_to_domain(row) for row in session.exec(stmt).all()]
        except (SQLAlchemyError, ModelValidationError):
            logger.exception("request table unreadable; serving an empty collection")
            return []

    def get_all(self) -> List[AccessRequest]:
        return self._read(select(AccessRequestRow).order_by(AccessRequestRow.seq))

    def get(self, request_id: str) -> Optional[AccessRequest]:
        found = self._read(select(AccessRequestRow).where(AccessRequestRow.id == request_id))
        return found[0] if found else None

    def get_by_employer(self, employer_id: str) -> List[AccessRequest]:
        return self._read(
            select(AccessRequestRow)
            .where(AccessRequestRow.employer_id == employer_id)
            .order_by(AccessRequestRow.seq)
        )

    def get_by_student(self, student_enrollment_id: str) -> List[AccessRequest]:
        return self._read(
            select(AccessRequestRow)
            .where(AccessRequestRow.student_key == enrollment_key(student_enrollment_id))
            .order_by(AccessRequestRow.seq)
        )

    def insert(self, draft: AccessRequestDraft) -> AccessRequest:
        with self._write_lock:
            try:
                try:
                    created = self._insert_row(draft)
                except IntegrityError:
                    # Id collision; draw a fresh one.
                    logger.warning("request id collision on insert; retrying with a new id")
                    created = self._insert_row(draft)
            except SQLAlchemyError as exc:
                raise PersistenceError(f"cannot insert access request: {exc}") from exc
        logger.debug("stored request %s", created.id)
        return created

    def _insert_row(self, draft: AccessRequestDraft) -> AccessRequest:
        row = AccessRequestRow(
            id=self._id_factory(),
            created_at=self._clock(),
            student_key=enrollment_key(draft.student_enrollment_id),
            **{**draft.model_dump(), "requested_fields": list(draft.requested_fields)},
        )
        with Session(self.engine) as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_domain(row)

    def update(self, request_id: str, mutation: Mutation) -> Optional[AccessRequest]:
        with self._write_lock:
            try:
                with Session(self.engine) as session:
                    row = session.exec(
                        select(AccessRequestRow)
                        .where(AccessRequestRow.id == request_id)
                        .with_for_update()
                    ).first()
                    if row is None:
                        return None
                    current = _to_domain(row)
                    updated = apply_mutation(current, mutation)
                    if updated is current:
                        return current
                    changes: Dict[str, Any] = updated.model_dump()
                    for name in ("status", "approved_fields", "resolved_at"):
                        value = changes[name]
                        setattr(row, name, list(value) if isinstance(value, tuple) else value)
                    session.add(row)
                    session.commit()
                    return updated
            except SQLAlchemyError as exc:
                raise PersistenceError(f"cannot update access request {request_id}: {exc}") from exc


def open_store(backend: str, *, engine: Optional[Engine] = None, path: Optional[str] = None, **kwargs) -> RequestStore:
    """Build the store named by ``backend`` ("sql", "json" or "memory")."""
    if backend == "memory":
        return MemoryRequestStore(**kwargs)
    if backend == "json":
        if not path:
            raise ValueError("json backend needs a path")
        return JsonFileRequestStore(path, **kwargs)
    if backend == "sql":
        if engine is None:
            raise ValueError("sql backend needs an engine")
        return SqlRequestStore(engine, **kwargs)
    raise ValueError(f"unknown request store backend {backend!r}")
