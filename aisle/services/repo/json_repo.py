from __future__ import annotations

import asyncio
import io
import json
import os
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import PurePosixPath
from typing import Iterator, List, Optional
from urllib.parse import quote, unquote

from aisle.config import Settings
from aisle.core.models import InventoryItem
from aisle.services.exceptions import AssetError, PersistenceError
from aisle.services.repo.base import BlobStore, InventoryRepo

COLLECTION = "inventory"


# Cross-platform file lock (fcntl for *nix; msvcrt for Windows).
# Locks a sidecar "<path>.lock" so the data file itself can be atomically replaced.
@contextmanager
def _locked(path: str) -> Iterator[io.FileIO]:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    f = open(path + ".lock", "a+b")
    try:
        try:
            import fcntl  # type: ignore
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            unlock = lambda: fcntl.flock(f.fileno(), fcntl.LOCK_UN)  # noqa: E731
        except ImportError:
            import msvcrt  # type: ignore
            f.seek(0)
            msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)
            unlock = lambda: msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)  # noqa: E731
        try:
            yield f
        finally:
            unlock()
    finally:
        f.close()


def _atomic_write(path: str, data: bytes) -> None:
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=d)
    try:
        with os.fdopen(fd, "wb") as w:
            w.write(data)
            w.flush()
            os.fsync(w.fileno())
        os.replace(tmp, path)
    except OSError:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise


class JSONInventoryRepo(InventoryRepo):
    """
    Document store backed by one JSON file:

        {"inventory": {"<id>": {"name": ..., "image": ..., "quantity": ...}}}

    Documents keep insertion order. Blocking file I/O runs in a worker thread.
    """

    def __init__(self, settings: Settings):
        self.path = settings.inventory_file

    # ---- sync helpers (run under the file lock) ----------------------------

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "rb") as f:
            raw = f.read() or b"{}"
        return json.loads(raw.decode("utf-8")).get(COLLECTION, {})

    def _write(self, docs: dict) -> None:
        payload = json.dumps({COLLECTION: docs}, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        _atomic_write(self.path, payload)

    def _get_all(self) -> List[InventoryItem]:
        with _locked(self.path):
            docs = self._read()
        return [InventoryItem(id=doc_id, **doc) for doc_id, doc in docs.items()]

    def _create(self, item: InventoryItem) -> InventoryItem:
        doc_id = uuid.uuid4().hex
        with _locked(self.path):
            docs = self._read()
            docs[doc_id] = item.document()
            self._write(docs)
        return item.model_copy(update={"id": doc_id})

    def _update(self, item_id: str, fields: dict) -> None:
        with _locked(self.path):
            docs = self._read()
            if item_id not in docs:
                raise KeyError(f"No document {item_id!r} in {COLLECTION}")
            docs[item_id].update(fields)
            self._write(docs)

    def _delete(self, item_id: str) -> None:
        # Deleting a missing document is a no-op, like the hosted document stores.
        with _locked(self.path):
            docs = self._read()
            if docs.pop(item_id, None) is not None:
                self._write(docs)

    # ---- InventoryRepo -----------------------------------------------------

    async def get_all(self) -> List[InventoryItem]:
        try:
            return await asyncio.to_thread(self._get_all)
        except Exception as e:
            raise PersistenceError(f"Failed to load inventory from {self.path}: {e}") from e

    async def create(self, item: InventoryItem) -> InventoryItem:
        try:
            return await asyncio.to_thread(self._create, item)
        except Exception as e:
            raise PersistenceError(f"Failed to create {item.name!r} in {self.path}: {e}") from e

    async def update(self, item_id: str, fields: dict) -> None:
        try:
            await asyncio.to_thread(self._update, item_id, fields)
        except Exception as e:
            raise PersistenceError(f"Failed to update {item_id!r} in {self.path}: {e}") from e

    async def delete(self, item_id: str) -> None:
        try:
            await asyncio.to_thread(self._delete, item_id)
        except Exception as e:
            raise PersistenceError(f"Failed to delete {item_id!r} from {self.path}: {e}") from e


class LocalBlobStore(BlobStore):
    """
    Blob store on the local filesystem. ``images/<name>`` is written to
    ``<images_dir>/<name>`` and served by the app under ``<public_base_url>/images/``.
    """

    PREFIX = "images/"

    def __init__(self, settings: Settings):
        self.root = settings.images_dir
        self.url_prefix = settings.public_base_url.rstrip("/") + "/" + self.PREFIX

    def _file_for(self, path: str) -> str:
        name = PurePosixPath(path).name
        if not path.startswith(self.PREFIX) or not name:
            raise AssetError(f"Unsupported blob path {path!r}")
        return os.path.join(self.root, name)

    def owns(self, reference: Optional[str]) -> bool:
        return bool(reference) and reference.startswith(self.url_prefix)

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> str:
        target = self._file_for(path)
        try:
            await asyncio.to_thread(_atomic_write, target, content)
        except OSError as e:
            raise AssetError(f"Failed to upload {path}: {e}") from e
        return self.url_prefix + quote(os.path.basename(target))

    async def delete(self, url: str) -> None:
        if not self.owns(url):
            raise AssetError(f"Not a blob URL of this store: {url!r}")
        target = self._file_for(self.PREFIX + unquote(url[len(self.url_prefix):]))
        try:
            await asyncio.to_thread(os.remove, target)
        except OSError as e:
            raise AssetError(f"Failed to delete blob {url}: {e}") from e
