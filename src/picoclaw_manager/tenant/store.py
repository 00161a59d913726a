"""Tenant persistence.

``TenantStore`` is the keyed CRUD contract the orchestrator depends on;
``SQLAlchemyTenantStore`` implements it over an async SQLAlchemy session
factory.

Usage:
    store = SQLAlchemyTenantStore(create_session_factory(engine))
    await store.create(tenant)
    tenant = await store.get("acme")
"""

from datetime import UTC, datetime
from typing import Protocol

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from picoclaw_manager.db.config import session_scope
from picoclaw_manager.db.models import TenantRecord
from picoclaw_manager.tenant.model import Resources, Tenant, TenantStatus
from picoclaw_manager.utils.exceptions import StoreError

logger = structlog.get_logger()


class TenantStore(Protocol):
    """Keyed CRUD over tenant records.

    ``get`` returns ``None`` for an unknown ID. ``update`` and ``delete`` of
    an unknown ID are errors. Every failure raises :class:`StoreError`.
    """

    async def get(self, tenant_id: str) -> Tenant | None: ...

    async def list(self) -> list[Tenant]: ...

    async def create(self, tenant: Tenant) -> None: ...

    async def update(self, tenant: Tenant) -> None: ...

    async def delete(self, tenant_id: str) -> None: ...


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _to_tenant(record: TenantRecord) -> Tenant:
    return Tenant(
        id=record.id,
        display_name=record.display_name,
        namespace=record.namespace,
        config=dict(record.config or {}),
        resources=Resources.from_dict(record.resources),
        status=TenantStatus(record.status),
        created_at=_aware(record.created_at),
        updated_at=_aware(record.updated_at),
    )


class SQLAlchemyTenantStore:
    """Tenant store backed by the ``tenants`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, tenant_id: str) -> Tenant | None:
        try:
            async with self._session_factory() as session:
                record = await session.get(TenantRecord, tenant_id)
                return _to_tenant(record) if record is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"get tenant {tenant_id}: {e}") from e

    async def list(self) -> list[Tenant]:
        """All tenants, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(TenantRecord).order_by(TenantRecord.created_at, TenantRecord.id)
                )
                return [_to_tenant(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"list tenants: {e}") from e

    async def create(self, tenant: Tenant) -> None:
        """Insert a new record. A duplicate ID or namespace is an error."""
        record = TenantRecord(
            id=tenant.id,
            display_name=tenant.display_name,
            namespace=tenant.namespace,
            config=tenant.config,
            resources=tenant.resources.to_dict(),
            status=tenant.status.value,
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
        )
        try:
            async with session_scope(self._session_factory) as session:
                session.add(record)
        except SQLAlchemyError as e:
            raise StoreError(f"create tenant {tenant.id}: {e}") from e
        logger.debug("tenant_record_created", tenant_id=tenant.id)

    async def update(self, tenant: Tenant) -> None:
        """Overwrite the mutable fields and refresh ``updated_at``.

        ``tenant.updated_at`` is set to the stored value on success.
        """
        now = datetime.now(UTC)
        try:
            async with session_scope(self._session_factory) as session:
                record = await session.get(TenantRecord, tenant.id)
                if record is None:
                    raise StoreError(f"update tenant {tenant.id}: not found")
                record.display_name = tenant.display_name
                record.config = tenant.config
                record.resources = tenant.resources.to_dict()
                record.status = tenant.status.value
                record.updated_at = now
        except SQLAlchemyError as e:
            raise StoreError(f"update tenant {tenant.id}: {e}") from e
        tenant.updated_at = now

    async def delete(self, tenant_id: str) -> None:
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(
                    delete(TenantRecord).where(TenantRecord.id == tenant_id)
                )
                if result.rowcount == 0:
                    raise StoreError(f"delete tenant {tenant_id}: not found")
        except SQLAlchemyError as e:
            raise StoreError(f"delete tenant {tenant_id}: {e}") from e
