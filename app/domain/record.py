"""Record base class and in-memory repositories.

Every ``Record`` subclass gets its own ``Repository`` on ``objects``::

    class Post(Record):
        title: str

    post = Post.objects.create({"title": "Hello"})
    Post.objects.count()  # 1
"""
import threading
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict

from app.core.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R", bound="Record")


class RecordNotFound(LookupError):
    """Raised when a record lookup by id fails."""

    def __init__(self, model: str, record_id: Any):
        self.model = model
        self.record_id = record_id
        super().__init__(f"Couldn't find {model} with id={record_id}")


class Repository(Generic[R]):
    """Thread-safe in-memory store for one record class."""

    def __init__(self, model: Type[R]):
        self.model = model
        self._records: Dict[int, R] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"<Repository {self.model.__name__} count={len(self._records)}>"

    def build(self, attributes: Optional[Mapping[str, Any]] = None) -> R:
        """Return an unsaved, unvalidated instance."""
        return self.model.model_construct(**dict(attributes or {}))

    def create(self, attributes: Optional[Mapping[str, Any]] = None) -> R:
        """Validate and persist a new record.

        Raises:
            pydantic.ValidationError: If the attributes are invalid
        """
        data = dict(attributes or {})
        data.pop("id", None)
        record = self.model.model_validate(data)

        with self._lock:
            now = datetime.now(timezone.utc)
            record.id = self._next_id
            record.created_at = now
            record.updated_at = now
            self._records[record.id] = record
            self._next_id += 1

        logger.debug(f"{self.model.__name__} created", extra={"record_id": record.id})
        return record

    def update(self, record: R, attributes: Optional[Mapping[str, Any]] = None) -> R:
        """Validate the merged attributes and replace the stored record.

        The passed record is only modified when validation succeeds.
        """
        merged = {name: getattr(record, name, None) for name in self.model.model_fields}
        merged.update(attributes or {})
        merged["id"] = record.id
        updated = self.model.model_validate(merged)
        updated.created_at = record.created_at
        updated.updated_at = datetime.now(timezone.utc)

        with self._lock:
            if record.id not in self._records:
                raise RecordNotFound(self.model.__name__, record.id)
            self._records[record.id] = updated

        for name in self.model.model_fields:
            setattr(record, name, getattr(updated, name))
        return record

    def destroy(self, record: R) -> R:
        with self._lock:
            if self._records.pop(record.id, None) is None:
                raise RecordNotFound(self.model.__name__, record.id)
        logger.debug(f"{self.model.__name__} destroyed", extra={"record_id": record.id})
        return record

    def find(self, record_id: Any) -> R:
        try:
            key = int(record_id)
        except (TypeError, ValueError):
            raise RecordNotFound(self.model.__name__, record_id)
        with self._lock:
            record = self._records.get(key)
        if record is None:
            raise RecordNotFound(self.model.__name__, record_id)
        return record

    def find_by(self, **conditions: Any) -> Optional[R]:
        for record in self.all():
            if all(getattr(record, key, None) == value for key, value in conditions.items()):
                return record
        return None

    def all(self) -> List[R]:
        with self._lock:
            return list(self._records.values())

    def first(self) -> Optional[R]:
        records = self.all()
        return records[0] if records else None

    def last(self) -> Optional[R]:
        records = self.all()
        return records[-1] if records else None

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._next_id = 1


class Record(BaseModel):
    """Base class for persisted models."""

    model_config = ConfigDict(validate_assignment=False)

    registry: ClassVar[Dict[str, Repository]] = {}
    objects: ClassVar[Repository]

    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        cls.objects = Repository(cls)
        Record.registry[f"{cls.__module__}.{cls.__qualname__}"] = cls.objects

    @property
    def persisted(self) -> bool:
        return self.id is not None

    @property
    def new_record(self) -> bool:
        return self.id is None

    def reload(self: R) -> R:
        """Refresh attributes from the repository."""
        stored = type(self).objects.find(self.id)
        for name in type(self).model_fields:
            setattr(self, name, getattr(stored, name))
        return self

    def to_param(self) -> str:
        return str(self.id)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Record) and type(other) is type(self) and self.id is not None:
            return self.id == other.id
        return super().__eq__(other)

    __hash__ = object.__hash__


def clear_all() -> None:
    """Empty every repository (used between tests)."""
    for repository in Record.registry.values():
        repository.clear()
