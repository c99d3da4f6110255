"""Tenant-scoped data access.

All reads and writes of tenant-owned rows go through
``TenantScopedRepository``, which adds the ``tenant_id`` filter to every
query and pins it on every insert. A row belonging to another tenant is
indistinguishable from a missing row.
"""
import logging
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy import update as sa_update
from sqlalchemy.orm import Session

from ehs.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

IMMUTABLE_FIELDS = frozenset({"id", "tenant_id", "created_at"})


class TenantScopedRepository(Generic[ModelT]):
    """CRUD helper bound to a single tenant."""

    def __init__(self, session: Session, model: type[ModelT], tenant_id: UUID):
        if tenant_id is None:
            raise ValueError("tenant_id is required for tenant-scoped access")
        if not hasattr(model, "tenant_id"):
            raise TypeError(f"{model.__name__} is not a tenant-owned model")
        self.session = session
        self.model = model
        self.tenant_id = tenant_id

    @property
    def resource_name(self) -> str:
        return self.model.__name__

    def _scoped(self, **filters: Any):
        conditions = [self.model.tenant_id == self.tenant_id]
        for field, value in filters.items():
            conditions.append(getattr(self.model, field) == value)
        return conditions

    def list(self, order_by: Optional[Any] = None, **filters: Any) -> list[ModelT]:
        """List rows of this tenant, optionally filtered by column equality."""
        stmt = select(self.model).where(*self._scoped(**filters))
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        elif hasattr(self.model, "created_at"):
            stmt = stmt.order_by(self.model.created_at.desc())
        return list(self.session.scalars(stmt))

    def get(self, record_id: UUID) -> Optional[ModelT]:
        """Fetch a row by id; None if missing or owned by another tenant."""
        stmt = select(self.model).where(*self._scoped(id=record_id))
        return self.session.scalars(stmt).first()

    def get_or_404(self, record_id: UUID) -> ModelT:
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(self.resource_name, str(record_id))
        return record

    def create(self, **values: Any) -> ModelT:
        """Insert a row owned by this tenant."""
        values.pop("tenant_id", None)
        record = self.model(tenant_id=self.tenant_id, **values)
        self.session.add(record)
        self.session.flush()
        return record

    def update(self, record_id: UUID, **values: Any) -> ModelT:
        """Update fields of a row of this tenant.

        Raises:
            NotFoundError: If the row does not exist in this tenant.
            ValidationError: If an immutable field is supplied.
        """
        self._reject_immutable(values)
        record = self.get_or_404(record_id)
        for field, value in values.items():
            setattr(record, field, value)
        self.session.flush()
        return record

    def update_many(self, filters: dict[str, Any], values: dict[str, Any]) -> int:
        """Bulk update rows of this tenant; returns the number of rows changed."""
        self._reject_immutable(values)
        stmt = (
            sa_update(self.model)
            .where(*self._scoped(**filters))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return result.rowcount or 0

    def delete(self, record_id: UUID) -> bool:
        """Delete a row of this tenant; False if nothing matched."""
        stmt = sa_delete(self.model).where(*self._scoped(id=record_id))
        result = self.session.execute(stmt.execution_options(synchronize_session="fetch"))
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info(
                f"Deleted {self.resource_name} {record_id}",
                extra={"tenant_id": str(self.tenant_id), "resource_id": str(record_id)},
            )
        return deleted

    def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(*self._scoped(**filters))
        return self.session.scalar(stmt) or 0

    @staticmethod
    def _reject_immutable(values: dict[str, Any]) -> None:
        blocked = IMMUTABLE_FIELDS.intersection(values)
        if blocked:
            raise ValidationError(
                "Immutable fields cannot be changed",
                details=[{"field": field, "issue": "immutable"} for field in sorted(blocked)],
            )


def sds_storage_key(tenant_id: UUID, chemical_id: UUID, timestamp: int) -> str:
    """Object storage key for a chemical's safety data sheet."""
    return f"sds/{tenant_id}/{chemical_id}-{timestamp}.pdf"
