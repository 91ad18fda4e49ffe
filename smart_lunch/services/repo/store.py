from __future__ import annotations

import io
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from smart_lunch.config import Settings
from smart_lunch.services.exceptions import PermissionDeniedError, RepoError, StoreUnavailableError
from smart_lunch.services.firebase import get_firebase_app

logger = logging.getLogger(__name__)

T = TypeVar("T")

PERMISSION_DENIED_MESSAGE = "Permission denied. Please check Firestore security rules are deployed."
UNAVAILABLE_MESSAGE = (
    "Firestore is temporarily unavailable. Please check your internet connection and try again."
)


class DocumentStore(ABC):
    """Per-collection, per-key JSON documents with equality queries."""

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[dict]: ...

    @abstractmethod
    def set(self, collection: str, key: str, data: dict, merge: bool = False) -> None: ...

    @abstractmethod
    def delete(self, collection: str, key: str) -> None: ...

    @abstractmethod
    def query(self, collection: str, field: str, value, order_by: Optional[str] = None,
              descending: bool = False) -> List[dict]: ...


# ---------- Local JSON files ----------

# Cross-platform file lock (fcntl for *nix; msvcrt for Windows)
@contextmanager
def _locked(path: str) -> Iterator[io.FileIO]:
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        f = open(path, "a+b")  # create if missing
    except PermissionError as e:
        raise PermissionDeniedError(f"Cannot open {path}: {e}") from e
    except OSError as e:
        raise StoreUnavailableError(f"Cannot open {path}: {e}") from e
    unlock: Callable[[], None]
    try:
        try:
            import fcntl  # type: ignore
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            unlock = lambda: fcntl.flock(f.fileno(), fcntl.LOCK_UN)  # noqa: E731
        except ImportError:
            import msvcrt  # type: ignore
            msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)
            unlock = lambda: msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)  # noqa: E731
    except OSError as e:
        f.close()
        raise StoreUnavailableError(f"Could not lock file {path}: {e}") from e
    try:
        yield f
    finally:
        try:
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
    except OSError as e:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise RepoError(f"Atomic write failed for {path}: {e}") from e


class JSONDocumentStore(DocumentStore):
    """
    One JSON file per collection under `data_dir`, mapping key -> document.
    Read-modify-write cycles hold an exclusive lock on a sidecar `.lock` file;
    the data file itself is replaced atomically.
    """

    def __init__(self, settings: Settings):
        self.root = settings.data_dir

    def _path(self, collection: str) -> str:
        return os.path.join(self.root, f"{collection}.json")

    def _read(self, path: str) -> Dict[str, dict]:
        try:
            if not os.path.exists(path):
                return {}
            with open(path, "rb") as f:
                raw = f.read() or b"{}"
            return json.loads(raw.decode("utf-8"))
        except PermissionError as e:
            raise PermissionDeniedError(f"Cannot read {path}: {e}") from e
        except (OSError, ValueError) as e:
            raise RepoError(f"Failed to load {path}: {e}") from e

    def _write(self, path: str, docs: Dict[str, dict]) -> None:
        payload = json.dumps(docs, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        _atomic_write(path, payload)

    def get(self, collection: str, key: str) -> Optional[dict]:
        path = self._path(collection)
        with _locked(path + ".lock"):
            return self._read(path).get(key)

    def set(self, collection: str, key: str, data: dict, merge: bool = False) -> None:
        path = self._path(collection)
        with _locked(path + ".lock"):
            docs = self._read(path)
            if merge and key in docs:
                docs[key] = {**docs[key], **data}
            else:
                docs[key] = data
            self._write(path, docs)

    def delete(self, collection: str, key: str) -> None:
        path = self._path(collection)
        with _locked(path + ".lock"):
            docs = self._read(path)
            if docs.pop(key, None) is not None:
                self._write(path, docs)

    def query(self, collection: str, field: str, value, order_by: Optional[str] = None,
              descending: bool = False) -> List[dict]:
        path = self._path(collection)
        with _locked(path + ".lock"):
            docs = self._read(path)
        rows = [d for d in docs.values() if d.get(field) == value]
        if order_by:
            rows.sort(key=lambda d: str(d.get(order_by) or ""), reverse=descending)
        return rows


# ---------- Firestore ----------

_UNAVAILABLE = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.FailedPrecondition,
)


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, client):
        self._db = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestoreDocumentStore":
        return cls(firestore.client(get_firebase_app(settings)))

    def _call(self, what: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except google_exceptions.PermissionDenied as e:
            logger.error("Firestore %s rejected: %s", what, e)
            raise PermissionDeniedError(PERMISSION_DENIED_MESSAGE) from e
        except _UNAVAILABLE as e:
            logger.warning("Firestore %s unavailable: %s", what, e)
            raise StoreUnavailableError(UNAVAILABLE_MESSAGE) from e
        except google_exceptions.GoogleAPICallError as e:
            logger.error("Firestore %s failed: %s", what, e)
            raise RepoError(getattr(e, "message", None) or str(e)) from e

    def get(self, collection: str, key: str) -> Optional[dict]:
        snap = self._call("get", lambda: self._db.collection(collection).document(key).get())
        return snap.to_dict() if snap.exists else None

    def set(self, collection: str, key: str, data: dict, merge: bool = False) -> None:
        self._call("set", lambda: self._db.collection(collection).document(key).set(data, merge=merge))

    def delete(self, collection: str, key: str) -> None:
        self._call("delete", lambda: self._db.collection(collection).document(key).delete())

    def query(self, collection: str, field: str, value, order_by: Optional[str] = None,
              descending: bool = False) -> List[dict]:
        def run() -> List[dict]:
            q = self._db.collection(collection).where(filter=FieldFilter(field, "==", value))
            if order_by:
                q = q.order_by(order_by, direction="DESCENDING" if descending else "ASCENDING")
            return [doc.to_dict() for doc in q.stream()]

        return self._call("query", run)


def create_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "firestore":
        return FirestoreDocumentStore.from_settings(settings)
    return JSONDocumentStore(settings)
