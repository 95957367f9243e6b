"""
Remote sync client for the hosted document store (Firestore REST API).

Collections hold one document per record (document id == record id):
    tasks     → Task
    projects  → Project
    deals     → Deal    (seeded; stage changes written back)
    clients   → Client  (seeded)

Contract:
  - fetch_all() never raises; an unconfigured or unreachable remote yields the
    built-in sample set with source == "mock".
  - subscribe() delivers a full snapshot of both collections on every change
    and returns an unsubscribe function.
  - update_field() is best-effort: failures are logged and reported as False.

Writes issued by the stores go through WriteDispatcher so callers never wait
on the network.
"""
import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests

from .config import Config
from .sample_data import sample_projects, sample_tasks
from .schema import Client, Deal, Project, Task

logger = logging.getLogger(__name__)

TASKS_COLLECTION = "tasks"
PROJECTS_COLLECTION = "projects"
DEALS_COLLECTION = "deals"
CLIENTS_COLLECTION = "clients"

# Stamped by the server on seed; never sent in the document body
SERVER_TIMESTAMP_FIELDS = ("createdAt", "updatedAt")

SOURCE_REMOTE = "firestore"
SOURCE_MOCK = "mock"
SOURCE_CACHE = "cache"


class RemoteError(Exception):
    """Raised by the raw request helpers when the remote call fails."""
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Typed value codec
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a Python value as a Firestore typed Value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, Enum):
        return encode_value(value.value)
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    if isinstance(value, date):
        # Calendar dates are stored as YYYY-MM-DD strings
        return {"stringValue": value.isoformat()}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {str(k): encode_value(v) for k, v in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    """Decode a Firestore typed Value. Unknown kinds decode to None."""
    if not isinstance(value, dict):
        return None
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        try:
            return int(value["integerValue"])
        except (TypeError, ValueError):
            return None
    if "doubleValue" in value:
        try:
            return float(value["doubleValue"])
        except (TypeError, ValueError):
            return None
    for kind in ("stringValue", "timestampValue", "referenceValue", "bytesValue"):
        if kind in value:
            return value[kind]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"] or {})
    if "arrayValue" in value:
        return [decode_value(v) for v in (value["arrayValue"] or {}).get("values", [])]
    if "mapValue" in value:
        return decode_fields((value["mapValue"] or {}).get("fields", {}))
    return None


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: decode_value(v) for k, v in (fields or {}).items()}


def decode_document(document: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Return (document id, decoded fields) for a REST Document."""
    name = document.get("name", "")
    return name.rsplit("/", 1)[-1], decode_fields(document.get("fields", {}))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Client
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class FetchResult:
    """Full snapshot of both collections plus where it came from."""
    tasks: List[Task] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    source: str = SOURCE_MOCK


def mock_result() -> FetchResult:
    return FetchResult(tasks=sample_tasks(), projects=sample_projects(), source=SOURCE_MOCK)


class RemoteSyncClient:
    """HTTP client for the Firestore REST API."""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.timeout = config.request_timeout

    @property
    def is_configured(self) -> bool:
        return self.config.is_remote_configured

    @property
    def database_path(self) -> str:
        return (
            f"projects/{self.config.firebase_project_id}"
            f"/databases/{self.config.firestore_database}"
        )

    def _url(self, suffix: str) -> str:
        base = self.config.firestore_base_url.rstrip("/")
        return f"{base}/{self.database_path}/documents{suffix}"

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"key": self.config.firebase_api_key}
        params.update(extra)
        return params

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteError(f"{method} {url} failed: {e}") from e
        if not r.ok:
            raise RemoteError(f"{method} {url} returned {r.status_code}: {r.text[:200]}")
        try:
            return r.json() if r.content else {}
        except ValueError as e:
            raise RemoteError(f"{method} {url} returned invalid JSON") from e

    # ── Reads ────────────────────────────────────────────────────────────────

    def list_documents(self, collection: str) -> List[Tuple[str, Dict[str, Any]]]:
        """Fetch every document of a collection, following page tokens."""
        documents = []
        page_token = None
        while True:
            params = self._params(pageSize=self.config.page_size)
            if page_token:
                params["pageToken"] = page_token
            body = self._request("GET", self._url(f"/{collection}"), params=params)
            documents.extend(decode_document(d) for d in body.get("documents", []))
            page_token = body.get("nextPageToken")
            if not page_token:
                return documents

    def fetch_snapshot(self) -> FetchResult:
        """Read both collections as they are on the remote. Raises RemoteError."""
        tasks = [Task.from_dict(data, doc_id) for doc_id, data in self.list_documents(TASKS_COLLECTION)]
        projects = [Project.from_dict(data, doc_id) for doc_id, data in self.list_documents(PROJECTS_COLLECTION)]
        return FetchResult(tasks=tasks, projects=projects, source=SOURCE_REMOTE)

    def fetch_all(self) -> FetchResult:
        """
        Load tasks and projects, never raising.

        Falls back to the sample set when the remote is unconfigured or fails,
        and per collection when a collection is empty.
        """
        if not self.is_configured:
            return mock_result()

        try:
            snapshot = self.fetch_snapshot()
        except RemoteError as e:
            logger.warning(f"Failed to load remote data, using sample data: {e}")
            return mock_result()

        has_remote_data = bool(snapshot.tasks or snapshot.projects)
        return FetchResult(
            tasks=snapshot.tasks or sample_tasks(),
            projects=snapshot.projects or sample_projects(),
            source=SOURCE_REMOTE if has_remote_data else SOURCE_MOCK,
        )

    def subscribe(self, on_data: Callable[[FetchResult], None],
                  on_error: Callable[[Exception], None]) -> Callable[[], None]:
        """
        Push full snapshots to on_data whenever either collection changes.

        Returns an unsubscribe function. When the remote is unconfigured the
        sample set is delivered once and unsubscribe does nothing.
        """
        if not self.is_configured:
            on_data(mock_result())
            return lambda: None

        poller = SnapshotPoller(self, on_data, on_error, self.config.poll_interval_secs)
        poller.start()
        return poller.stop

    # ── Writes ───────────────────────────────────────────────────────────────

    def update_field(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> bool:
        """Update only the patched fields of an existing document. Never raises."""
        if not self.is_configured:
            return False
        params = self._params(**{
            "updateMask.fieldPaths": list(patch.keys()),
            "currentDocument.exists": "true",
        })
        try:
            self._request(
                "PATCH",
                self._url(f"/{collection}/{doc_id}"),
                params=params,
                json={"fields": encode_fields(patch)},
            )
        except (RemoteError, TypeError) as e:
            logger.warning(f"Failed to update {collection}/{doc_id} ({', '.join(patch)}): {e}")
            return False
        return True

    def seed(self, tasks: List[Task], projects: List[Project],
             deals: Sequence[Deal] = (), clients: Sequence[Client] = ()) -> int:
        """
        Write full documents for every record in one atomic commit.

        Deal documents must exist before stage changes can be written back,
        so the board's deals and clients are seeded alongside tasks and
        projects. createdAt/updatedAt are set to the server's request time.
        Returns the number of documents written; raises RemoteError on failure.
        """
        if not self.is_configured:
            raise RemoteError(
                f"Remote not configured (missing: {', '.join(self.config.missing_remote_keys())})"
            )
        writes = []
        for collection, records in (
            (PROJECTS_COLLECTION, projects),
            (TASKS_COLLECTION, tasks),
            (CLIENTS_COLLECTION, clients),
            (DEALS_COLLECTION, deals),
        ):
            for record in records:
                body = {k: v for k, v in record.to_dict().items() if k not in SERVER_TIMESTAMP_FIELDS}
                writes.append({
                    "update": {
                        "name": f"{self.database_path}/documents/{collection}/{record.id}",
                        "fields": encode_fields(body),
                    },
                    "updateTransforms": [
                        {"fieldPath": "createdAt", "setToServerValue": "REQUEST_TIME"},
                        {"fieldPath": "updatedAt", "setToServerValue": "REQUEST_TIME"},
                    ],
                })
        url = self._url(":commit")
        self._request("POST", url, params=self._params(), json={"writes": writes})
        return len(writes)


class SnapshotPoller(threading.Thread):
    """Polls both collections and emits a full snapshot when either changed."""

    def __init__(self, client: RemoteSyncClient,
                 on_data: Callable[[FetchResult], None],
                 on_error: Callable[[Exception], None],
                 interval: float):
        super().__init__(name="nexus-snapshot-poller", daemon=True)
        self.client = client
        self.on_data = on_data
        self.on_error = on_error
        self.interval = interval
        self._stop_event = threading.Event()
        self._last: Optional[Tuple[List[Task], List[Project]]] = None

    def run(self):
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.interval)

    def poll_once(self) -> bool:
        """Run one poll. Returns True when a snapshot was delivered."""
        try:
            snapshot = self.client.fetch_snapshot()
        except RemoteError as e:
            self._report(e)
            return False

        current = (snapshot.tasks, snapshot.projects)
        if current == self._last or self._stop_event.is_set():
            return False
        self._last = current
        try:
            self.on_data(snapshot)
        except Exception as e:
            logger.error(f"Snapshot handler failed: {e}", exc_info=True)
        return True

    def _report(self, error: Exception) -> None:
        try:
            self.on_error(error)
        except Exception as e:
            logger.error(f"Snapshot error handler failed: {e}", exc_info=True)

    def stop(self) -> None:
        """Cancel polling; waits for the current poll unless called from it."""
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=self.client.timeout + 1)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Fire-and-forget writes
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_STOP = object()


class WriteDispatcher:
    """
    Runs remote writes on a background worker.

    submit() returns immediately. A failing write is logged and dropped:
    no retry, and the local mutation that triggered it stays applied.
    """

    def __init__(self, name: str = "nexus-remote-writes"):
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """Queue fn(*args, **kwargs). Returns False if the dispatcher is closed."""
        # Checked and enqueued under the lock so nothing lands behind _STOP
        with self._lock:
            if self._closed:
                logger.warning(f"{self.name}: dropping write after close")
                return False
            self._queue.put((fn, args, kwargs))
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._worker, name=self.name, daemon=True)
                self._thread.start()
        return True

    def _worker(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                fn, args, kwargs = item
                try:
                    fn(*args, **kwargs)
                except Exception as e:
                    logger.warning(f"{self.name}: remote write failed: {e}")
            finally:
                self._queue.task_done()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until queued writes have run. Returns False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def close(self, timeout: float = 5.0) -> None:
        """Let queued writes finish, then stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is not None and thread.is_alive():
                self._queue.put(_STOP)
        if thread is not None:
            thread.join(timeout)
