"""
File-backed document store.

Each collection lives in ``<data_dir>/<collection>.json`` as
``{"<collection>": [ ...documents... ]}``. Writes go to a temporary file in
the same directory, are flushed (and fsynced unless disabled), and then
``os.replace``d over the live file, so a crash never leaves a truncated
container behind and readers never see a partial write.

File I/O runs in the default executor so the event loop keeps serving other
requests while a container is loaded or written.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from storefront.config import StoreConfig
from storefront.documents.base import BaseDocumentStore
from storefront.documents.locks import CollectionLockManager
from storefront.exceptions import CorruptStoreError, StoreError, StoreWriteError
from storefront.observability import Tracer

logger = logging.getLogger(__name__)


class FileDocumentStore(BaseDocumentStore):
    """
    Durable document store keeping one JSON file per collection.

    Construct one instance at process start and pass it to every
    collaborator; two instances pointed at the same directory would have
    independent locks and could lose updates.

    Example:
        >>> store = FileDocumentStore(StoreConfig(data_dir=Path("./database")))
        >>> product = await store.create("products", {"name": "Gift card", "stock": 10})
        >>> await store.update("products", product["id"], {"stock": 9})
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        lock_manager: CollectionLockManager | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the file store.

        Args:
            config: Store configuration (defaults to ``StoreConfig()``)
            lock_manager: Optional shared lock manager
            tracer: Optional tracer for tracing (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._config = config or StoreConfig()
        super().__init__(
            lock_manager=lock_manager,
            lock_timeout=self._config.lock_timeout,
            indent=self._config.indent,
            tracer=tracer,
            enable_tracing=enable_tracing,
        )

    @property
    def config(self) -> StoreConfig:
        """The store configuration."""
        return self._config

    def path_for(self, collection: str) -> Path:
        """Path of the container file for ``collection``."""
        return self._config.data_dir / f"{collection}.json"

    def _describe(self, collection: str) -> Path:
        return self.path_for(collection)

    async def _read_raw(self, collection: str) -> str | None:
        return await asyncio.to_thread(self._read_file, collection, self.path_for(collection))

    async def _write_raw(self, collection: str, content: str) -> None:
        await asyncio.to_thread(self._write_file, collection, self.path_for(collection), content)

    def _read_file(self, collection: str, path: Path) -> str | None:
        try:
            return path.read_text(encoding=self._config.encoding)
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptStoreError(collection, f"content is not valid {e.encoding}", path) from e
        except OSError as e:
            raise StoreError(f"Error reading collection '{collection}' from {path}: {e}") from e

    def _write_file(self, collection: str, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
            )
        except OSError as e:
            raise StoreWriteError(collection, str(e)) from e

        try:
            with os.fdopen(fd, "w", encoding=self._config.encoding) as handle:
                handle.write(content)
                handle.flush()
                if self._config.fsync:
                    os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error(
                f"Failed to persist collection '{collection}': {e}",
                extra={"collection": collection, "path": str(path)},
            )
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StoreWriteError(collection, str(e)) from e


__all__ = ["FileDocumentStore"]
