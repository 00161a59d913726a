"""Unit tests for SQLAlchemyTenantStore."""

from datetime import UTC, datetime, timedelta

import pytest

from picoclaw_manager.tenant.model import Resources, Tenant, TenantStatus, build_config
from picoclaw_manager.utils.exceptions import StoreError


def make_tenant(tenant_id: str = "acme", created_at: datetime | None = None) -> Tenant:
    created_at = created_at or datetime.now(UTC)
    return Tenant(
        id=tenant_id,
        display_name=tenant_id.upper(),
        namespace=f"picoclaw-tenant-{tenant_id}",
        config=build_config(providers={"openai": {"model": "gpt"}}),
        resources=Resources.default(),
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.mark.asyncio
class TestSQLAlchemyTenantStore:
    """Tests for the SQL tenant store."""

    async def test_get_missing_returns_none(self, store):
        assert await store.get("ghost") is None

    async def test_create_and_get(self, store):
        tenant = make_tenant()
        await store.create(tenant)

        loaded = await store.get("acme")

        assert loaded is not None
        assert loaded.id == "acme"
        assert loaded.display_name == "ACME"
        assert loaded.namespace == "picoclaw-tenant-acme"
        assert loaded.config == tenant.config
        assert loaded.resources == Resources.default()
        assert loaded.status == TenantStatus.PROVISIONING

    async def test_timestamps_are_timezone_aware(self, store):
        await store.create(make_tenant())

        loaded = await store.get("acme")

        assert loaded.created_at.tzinfo is not None
        assert loaded.updated_at.tzinfo is not None

    async def test_config_key_order_survives(self, store):
        tenant = make_tenant()
        tenant.config = build_config(providers={}, agents={}, channels={})
        await store.create(tenant)

        loaded = await store.get("acme")

        assert list(loaded.config) == ["gateway", "providers", "agents", "channels"]

    async def test_duplicate_create_fails(self, store):
        await store.create(make_tenant())

        with pytest.raises(StoreError):
            await store.create(make_tenant())

    async def test_list_ordered_by_creation(self, store):
        now = datetime.now(UTC)
        await store.create(make_tenant("second", now))
        await store.create(make_tenant("first", now - timedelta(minutes=5)))
        await store.create(make_tenant("third", now + timedelta(minutes=5)))

        tenants = await store.list()

        assert [t.id for t in tenants] == ["first", "second", "third"]

    async def test_list_empty(self, store):
        assert await store.list() == []

    async def test_update_overwrites_and_refreshes_updated_at(self, store):
        original = make_tenant(created_at=datetime.now(UTC) - timedelta(hours=1))
        await store.create(original)

        original.display_name = "Renamed"
        original.status = TenantStatus.ACTIVE
        original.resources = Resources.default().merge(Resources(agent_cpu="2"))
        await store.update(original)

        loaded = await store.get("acme")
        assert loaded.display_name == "Renamed"
        assert loaded.status == TenantStatus.ACTIVE
        assert loaded.resources.agent_cpu == "2"
        assert loaded.updated_at > loaded.created_at
        assert original.updated_at == loaded.updated_at

    async def test_update_missing_fails(self, store):
        with pytest.raises(StoreError, match="not found"):
            await store.update(make_tenant("ghost"))

    async def test_delete(self, store):
        await store.create(make_tenant())

        await store.delete("acme")

        assert await store.get("acme") is None

    async def test_delete_missing_fails(self, store):
        with pytest.raises(StoreError, match="not found"):
            await store.delete("ghost")
