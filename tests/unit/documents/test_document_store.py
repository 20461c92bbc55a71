"""
Unit tests for the document stores.

Tests for:
- CRUD semantics shared by FileDocumentStore and InMemoryDocumentStore
- Auto-provisioning of missing containers
- Corrupt container detection
- Serialization of concurrent mutations
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

import pytest

from storefront.config import StoreConfig
from storefront.documents import (
    BaseDocumentStore,
    DocumentStore,
    FileDocumentStore,
    InMemoryDocumentStore,
    generate_id,
    validate_collection_name,
)
from storefront.exceptions import CorruptStoreError, ValidationError
from storefront.observability import MockTracer


@pytest.fixture(params=["memory", "file"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> BaseDocumentStore:
    """Run each test against both backends."""
    if request.param == "memory":
        return InMemoryDocumentStore(enable_tracing=False)
    return FileDocumentStore(
        StoreConfig(data_dir=tmp_path / "database", fsync=False),
        enable_tracing=False,
    )


class TestProtocol:
    def test_backends_implement_protocol(self, tmp_path: Path) -> None:
        assert isinstance(InMemoryDocumentStore(enable_tracing=False), DocumentStore)
        assert isinstance(
            FileDocumentStore(StoreConfig(data_dir=tmp_path), enable_tracing=False),
            DocumentStore,
        )


class TestGenerateId:
    def test_format(self) -> None:
        new_id = generate_id("orders")
        assert re.fullmatch(r"orde-\d{13}-[0-9a-z]{7}", new_id)

    def test_short_collection_name(self) -> None:
        assert generate_id("ab").startswith("ab-")

    def test_ids_differ(self) -> None:
        assert len({generate_id("users") for _ in range(100)}) == 100


class TestValidateCollectionName:
    @pytest.mark.parametrize("name", ["users", "digital_keys", "audit-log", "v2"])
    def test_accepts_plain_names(self, name: str) -> None:
        validate_collection_name(name)

    @pytest.mark.parametrize("name", ["", "../etc", "a/b", "orders.json", "with space"])
    def test_rejects_path_like_names(self, name: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_collection_name(name)
        assert exc_info.value.field == "collection"


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, store: BaseDocumentStore) -> None:
        created = await store.create("users", {"email": "ana@example.com", "role": "admin"})

        assert created["id"].startswith("user-")
        assert created["email"] == "ana@example.com"
        assert created["createdAt"] == created["updatedAt"]
        assert created["createdAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_create_ignores_caller_id_and_timestamps(self, store: BaseDocumentStore) -> None:
        created = await store.create(
            "users",
            {"id": "mine", "createdAt": "1999-01-01T00:00:00.000Z", "email": "a@b.c"},
        )

        assert created["id"] != "mine"
        assert created["createdAt"] != "1999-01-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_create_persists(self, store: BaseDocumentStore) -> None:
        created = await store.create("users", {"email": "a@b.c"})

        assert await store.get_by_id("users", created["id"]) == created
        assert await store.count("users") == 1

    @pytest.mark.asyncio
    async def test_create_rejects_non_mapping(self, store: BaseDocumentStore) -> None:
        with pytest.raises(ValidationError):
            await store.create("users", ["not", "a", "mapping"])  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_ids(self, store: BaseDocumentStore) -> None:
        created = await asyncio.gather(*(store.create("users", {"n": n}) for n in range(20)))

        assert len({document["id"] for document in created}) == 20
        assert await store.count("users") == 20

    @pytest.mark.asyncio
    async def test_returned_document_is_a_copy(self, store: BaseDocumentStore) -> None:
        created = await store.create("users", {"tags": ["a"]})
        created["tags"].append("b")

        stored = await store.get_by_id("users", created["id"])
        assert stored is not None
        assert stored["tags"] == ["a"]


class TestReads:
    @pytest.mark.asyncio
    async def test_get_all_of_missing_collection_provisions_it(
        self, store: BaseDocumentStore
    ) -> None:
        assert await store.get_all("coupons") == []
        assert await store.count("coupons") == 0

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, store: BaseDocumentStore) -> None:
        await store.create("users", {"email": "a@b.c"})
        assert await store.get_by_id("users", "user-0-missing") is None

    @pytest.mark.asyncio
    async def test_find_and_find_one(self, store: BaseDocumentStore) -> None:
        await store.create("users", {"email": "a@b.c", "role": "admin"})
        await store.create("users", {"email": "d@e.f", "role": "customer"})
        await store.create("users", {"email": "g@h.i", "role": "admin"})

        admins = await store.find("users", lambda u: u.get("role") == "admin")
        first = await store.find_one("users", lambda u: u.get("role") == "admin")
        nobody = await store.find_one("users", lambda u: u.get("role") == "owner")

        assert [u["email"] for u in admins] == ["a@b.c", "g@h.i"]
        assert first is not None
        assert first["email"] == "a@b.c"
        assert nobody is None

    @pytest.mark.asyncio
    async def test_exists(self, store: BaseDocumentStore) -> None:
        created = await store.create("users", {})
        assert await store.exists("users", created["id"])
        assert not await store.exists("users", "nope")

    @pytest.mark.asyncio
    async def test_invalid_collection_name_rejected(self, store: BaseDocumentStore) -> None:
        with pytest.raises(ValidationError):
            await store.get_all("../secrets")


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_merges_fields(self, store: BaseDocumentStore) -> None:
        created = await store.create("products", {"name": "Gift card", "stock": 10})

        updated = await store.update("products", created["id"], {"stock": 9, "featured": True})

        assert updated is not None
        assert updated["name"] == "Gift card"
        assert updated["stock"] == 9
        assert updated["featured"] is True
        assert updated["createdAt"] == created["createdAt"]
        assert updated["updatedAt"] >= created["updatedAt"]

    @pytest.mark.asyncio
    async def test_update_cannot_change_id_or_created_at(self, store: BaseDocumentStore) -> None:
        created = await store.create("products", {"name": "Gift card"})

        updated = await store.update(
            "products", created["id"], {"id": "hijacked", "createdAt": "1999-01-01T00:00:00.000Z"}
        )

        assert updated is not None
        assert updated["id"] == created["id"]
        assert updated["createdAt"] == created["createdAt"]
        assert await store.get_by_id("products", "hijacked") is None

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, store: BaseDocumentStore) -> None:
        assert await store.update("products", "nope", {"stock": 1}) is None

    @pytest.mark.asyncio
    async def test_concurrent_updates_of_distinct_fields_are_not_lost(
        self, store: BaseDocumentStore
    ) -> None:
        created = await store.create("products", {"name": "Bundle"})

        await asyncio.gather(
            *(store.update("products", created["id"], {f"field{n}": n}) for n in range(10))
        )

        stored = await store.get_by_id("products", created["id"])
        assert stored is not None
        for n in range(10):
            assert stored[f"field{n}"] == n

    @pytest.mark.asyncio
    async def test_concurrent_updates_of_different_documents_are_not_lost(
        self, store: BaseDocumentStore
    ) -> None:
        first = await store.create("orders", {"status": "pending"})
        second = await store.create("orders", {"status": "pending"})

        await asyncio.gather(
            store.update("orders", first["id"], {"status": "paid"}),
            store.update("orders", second["id"], {"status": "cancelled"}),
        )

        stored_first = await store.get_by_id("orders", first["id"])
        stored_second = await store.get_by_id("orders", second["id"])
        assert stored_first is not None and stored_first["status"] == "paid"
        assert stored_second is not None and stored_second["status"] == "cancelled"


class TestMutate:
    @pytest.mark.asyncio
    async def test_mutate_sees_current_document(self, store: BaseDocumentStore) -> None:
        created = await store.create("products", {"stock": 5})

        updated = await store.mutate(
            "products", created["id"], lambda current: {"stock": current["stock"] - 1}
        )

        assert updated is not None
        assert updated["stock"] == 4

    @pytest.mark.asyncio
    async def test_concurrent_increments_are_serialized(self, store: BaseDocumentStore) -> None:
        created = await store.create("products", {"stock": 0})

        await asyncio.gather(
            *(
                store.mutate("products", created["id"], lambda d: {"stock": d["stock"] + 1})
                for _ in range(25)
            )
        )

        stored = await store.get_by_id("products", created["id"])
        assert stored is not None
        assert stored["stock"] == 25

    @pytest.mark.asyncio
    async def test_mutate_returning_none_writes_nothing(self, store: BaseDocumentStore) -> None:
        created = await store.create("products", {"stock": 5})

        result = await store.mutate("products", created["id"], lambda _current: None)

        assert result == created

    @pytest.mark.asyncio
    async def test_mutate_exception_propagates_and_writes_nothing(
        self, store: BaseDocumentStore
    ) -> None:
        created = await store.create("products", {"stock": 5})

        def refuse(_current: dict) -> dict:
            raise RuntimeError("refused")

        with pytest.raises(RuntimeError):
            await store.mutate("products", created["id"], refuse)

        assert await store.get_by_id("products", created["id"]) == created
        assert not store.lock_manager.is_locked("products")

    @pytest.mark.asyncio
    async def test_mutate_missing_returns_none(self, store: BaseDocumentStore) -> None:
        assert await store.mutate("products", "nope", lambda _current: {"x": 1}) is None


class TestDeleteAndClear:
    @pytest.mark.asyncio
    async def test_delete(self, store: BaseDocumentStore) -> None:
        created = await store.create("users", {})

        assert await store.delete("users", created["id"]) is True
        assert await store.get_by_id("users", created["id"]) is None
        assert await store.delete("users", created["id"]) is False

    @pytest.mark.asyncio
    async def test_delete_guard_can_veto(self, store: BaseDocumentStore) -> None:
        created = await store.create("users", {"role": "admin"})

        def keep_admins(document: dict) -> None:
            if document.get("role") == "admin":
                raise PermissionError(document["id"])

        with pytest.raises(PermissionError):
            await store.delete("users", created["id"], keep_admins)

        assert await store.get_by_id("users", created["id"]) == created
        assert await store.delete("users", created["id"], lambda document: None) is True

    @pytest.mark.asyncio
    async def test_clear(self, store: BaseDocumentStore) -> None:
        await store.create("users", {})
        await store.create("users", {})

        await store.clear("users")

        assert await store.get_all("users") == []


class TestCorruptContainers:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "[]",
            '{"users": {"id": "x"}}',
            '{"users": [1, 2]}',
        ],
    )
    async def test_corrupt_content_raises(self, content: str) -> None:
        store = InMemoryDocumentStore(enable_tracing=False)
        store.seed_raw("users", content)

        with pytest.raises(CorruptStoreError) as exc_info:
            await store.get_all("users")
        assert exc_info.value.collection == "users"

    @pytest.mark.asyncio
    async def test_corrupt_container_is_not_overwritten_by_create(self) -> None:
        store = InMemoryDocumentStore(enable_tracing=False)
        store.seed_raw("users", "{not json")

        with pytest.raises(CorruptStoreError):
            await store.create("users", {"email": "a@b.c"})

        with pytest.raises(CorruptStoreError):
            await store.get_all("users")

    @pytest.mark.asyncio
    async def test_container_without_collection_key_is_empty(self) -> None:
        store = InMemoryDocumentStore(enable_tracing=False)
        store.seed_raw("users", "{}")

        assert await store.get_all("users") == []


class TestInMemoryHelpers:
    @pytest.mark.asyncio
    async def test_first_read_provisions_container(self) -> None:
        store = InMemoryDocumentStore(enable_tracing=False)
        assert store.collections == []

        await store.get_all("orders")

        assert store.collections == ["orders"]

    @pytest.mark.asyncio
    async def test_reset(self) -> None:
        store = InMemoryDocumentStore(enable_tracing=False)
        await store.create("orders", {})

        store.reset()

        assert store.collections == []


class TestTracing:
    @pytest.mark.asyncio
    async def test_operations_emit_spans(self) -> None:
        tracer = MockTracer()
        store = InMemoryDocumentStore(tracer=tracer)

        created = await store.create("users", {})
        await store.update("users", created["id"], {"role": "admin"})
        await store.get_by_id("users", created["id"])
        await store.delete("users", created["id"])

        assert tracer.span_names == [
            "storefront.store.create",
            "storefront.store.mutate",
            "storefront.store.get_by_id",
            "storefront.store.delete",
        ]
        assert tracer.spans[0][1] == {"storefront.collection": "users"}
