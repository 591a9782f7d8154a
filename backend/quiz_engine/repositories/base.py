"""Generic document-style repository over a SQLAlchemy session.

Repositories only ``flush``; the service that owns the unit of work decides when to
``commit`` or ``rollback``.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")

SortSpec = dict[str, str]  # {"created_at": "DESC"}


class DocumentRepository(Generic[ModelT]):
    """create / find_by_id / find / update_by_id for one model."""

    model: type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def create(self, record: ModelT) -> ModelT:
        self.db.add(record)
        self.db.flush()
        return record

    def find_by_id(self, record_id: str) -> ModelT | None:
        return self.db.get(self.model, record_id)

    def find(
        self,
        filters: dict[str, Any] | None = None,
        sort: SortSpec | None = None,
        limit: int | None = None,
        skip: int | None = None,
    ) -> list[ModelT]:
        stmt = select(self.model).filter_by(**(filters or {}))
        for field, direction in (sort or {}).items():
            column = getattr(self.model, field)
            stmt = stmt.order_by(column.desc() if direction.upper() == "DESC" else column.asc())
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def find_one(self, filters: dict[str, Any], sort: SortSpec | None = None) -> ModelT | None:
        rows = self.find(filters, sort=sort, limit=1)
        return rows[0] if rows else None

    def update_by_id(self, record_id: str, values: dict[str, Any]) -> ModelT | None:
        record = self.find_by_id(record_id)
        if record is None:
            return None
        for field, value in values.items():
            setattr(record, field, value)
        self.db.flush()
        return record
