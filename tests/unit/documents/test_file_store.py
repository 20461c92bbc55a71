"""Unit tests for FileDocumentStore persistence details."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from storefront.config import StoreConfig
from storefront.documents import FileDocumentStore
from storefront.exceptions import CorruptStoreError, StoreError, StoreWriteError


class TestContainerFiles:
    @pytest.mark.asyncio
    async def test_container_layout(self, file_store: FileDocumentStore, data_dir: Path) -> None:
        created = await file_store.create("orders", {"customerName": "José", "total": 10})

        path = data_dir / "orders.json"
        assert file_store.path_for("orders") == path
        content = json.loads(path.read_text(encoding="utf-8"))
        assert content == {"orders": [created]}

    @pytest.mark.asyncio
    async def test_non_ascii_is_written_verbatim(
        self, file_store: FileDocumentStore, data_dir: Path
    ) -> None:
        await file_store.create("users", {"name": "Ñandú"})

        assert "Ñandú" in (data_dir / "users.json").read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_missing_file_is_provisioned(
        self, file_store: FileDocumentStore, data_dir: Path
    ) -> None:
        assert await file_store.get_all("coupons") == []

        content = json.loads((data_dir / "coupons.json").read_text(encoding="utf-8"))
        assert content == {"coupons": []}

    @pytest.mark.asyncio
    async def test_reads_existing_file(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "users.json").write_text(
            json.dumps({"users": [{"id": "user-1", "email": "a@b.c"}]}),
            encoding="utf-8",
        )
        store = FileDocumentStore(StoreConfig(data_dir=data_dir, fsync=False), enable_tracing=False)

        assert await store.get_by_id("users", "user-1") == {"id": "user-1", "email": "a@b.c"}

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_with_path(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        (data_dir / "users.json").write_text('{"users": [', encoding="utf-8")
        store = FileDocumentStore(StoreConfig(data_dir=data_dir, fsync=False), enable_tracing=False)

        with pytest.raises(CorruptStoreError) as exc_info:
            await store.get_all("users")

        assert exc_info.value.path == data_dir / "users.json"
        assert (data_dir / "users.json").read_text(encoding="utf-8") == '{"users": ['

    @pytest.mark.asyncio
    async def test_invalid_encoding_raises_corrupt_store_error(self, data_dir: Path) -> None:
        data_dir.mkdir(parents=True)
        raw = b'{"orders": [{"id": "\xff\xfe"}]}'
        (data_dir / "orders.json").write_bytes(raw)
        store = FileDocumentStore(StoreConfig(data_dir=data_dir, fsync=False), enable_tracing=False)

        with pytest.raises(CorruptStoreError) as exc_info:
            await store.get_all("orders")

        assert exc_info.value.collection == "orders"
        assert exc_info.value.path == data_dir / "orders.json"
        assert (data_dir / "orders.json").read_bytes() == raw


class TestAtomicWrites:
    @pytest.mark.asyncio
    async def test_no_temporary_files_left_behind(
        self, file_store: FileDocumentStore, data_dir: Path
    ) -> None:
        created = await asyncio.gather(*(file_store.create("users", {"n": n}) for n in range(10)))
        await file_store.update("users", created[0]["id"], {"n": -1})
        await file_store.delete("users", created[1]["id"])

        assert sorted(p.name for p in data_dir.iterdir()) == ["users.json"]

    @pytest.mark.asyncio
    async def test_fsync_enabled(self, tmp_path: Path) -> None:
        store = FileDocumentStore(StoreConfig(data_dir=tmp_path, fsync=True), enable_tracing=False)

        created = await store.create("users", {"email": "a@b.c"})

        assert await store.get_by_id("users", created["id"]) == created

    @pytest.mark.asyncio
    async def test_unreadable_location_raises_store_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        store = FileDocumentStore(
            StoreConfig(data_dir=blocker / "database", fsync=False),
            enable_tracing=False,
        )

        with pytest.raises(StoreError):
            await store.create("users", {})

    @pytest.mark.asyncio
    async def test_temp_file_failure_raises_store_write_error(
        self,
        file_store: FileDocumentStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await file_store.get_all("users")

        def failing_mkstemp(**kwargs: object) -> tuple[int, str]:
            raise OSError("read-only file system")

        monkeypatch.setattr("storefront.documents.file.tempfile.mkstemp", failing_mkstemp)

        with pytest.raises(StoreWriteError) as exc_info:
            await file_store.create("users", {})
        assert exc_info.value.collection == "users"

    @pytest.mark.asyncio
    async def test_failed_rename_keeps_previous_container(
        self,
        file_store: FileDocumentStore,
        data_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        created = await file_store.create("users", {"email": "a@b.c"})
        before = (data_dir / "users.json").read_text(encoding="utf-8")

        def failing_replace(src: str, dst: str) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("storefront.documents.file.os.replace", failing_replace)

        with pytest.raises(StoreWriteError):
            await file_store.update("users", created["id"], {"email": "x@y.z"})

        assert (data_dir / "users.json").read_text(encoding="utf-8") == before
        assert sorted(p.name for p in data_dir.iterdir()) == ["users.json"]
        assert not file_store.lock_manager.is_locked("users")


class TestSharedInstance:
    @pytest.mark.asyncio
    async def test_collections_use_separate_files(
        self, file_store: FileDocumentStore, data_dir: Path
    ) -> None:
        await asyncio.gather(
            file_store.create("users", {}),
            file_store.create("orders", {}),
            file_store.create("products", {}),
        )

        assert sorted(p.name for p in data_dir.iterdir()) == [
            "orders.json",
            "products.json",
            "users.json",
        ]
