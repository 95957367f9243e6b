"""Shared test fixtures for the board core tests."""

import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Ensure the repo root (seed_firestore.py) is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from nexus.cache import LocalCache
from nexus.config import Config
from nexus.remote import RemoteSyncClient, decode_fields, encode_fields


def make_response(status: int = 200, body=None):
    """A stand-in for requests.Response."""
    r = MagicMock()
    r.status_code = status
    r.ok = 200 <= status < 400
    r.json.return_value = body if body is not None else {}
    r.content = b"{}" if body is not None else b""
    r.text = str(body)
    return r


def make_document(collection: str, doc_id: str, data: dict) -> dict:
    return {
        "name": f"projects/demo/databases/(default)/documents/{collection}/{doc_id}",
        "fields": encode_fields(data),
    }


class FakeFirestore:
    """Routes session.request() calls to in-memory collections."""

    def __init__(self, collections=None):
        self.collections = collections or {"tasks": {}, "projects": {}}
        self.calls = []
        self.fail = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.fail:
            return make_response(503, {"error": "unavailable"})
        if method == "GET":
            collection = url.rsplit("/", 1)[-1]
            docs = [
                make_document(collection, doc_id, data)
                for doc_id, data in self.collections.get(collection, {}).items()
            ]
            return make_response(200, {"documents": docs} if docs else {})
        if method == "POST" and url.endswith(":commit"):
            for write in kwargs["json"]["writes"]:
                path = write["update"]["name"].split("/documents/", 1)[1]
                collection, doc_id = path.split("/", 1)
                self.collections.setdefault(collection, {})[doc_id] = decode_fields(
                    write["update"]["fields"]
                )
            return make_response(200, {})
        if method == "PATCH":
            collection, doc_id = url.split("/documents/", 1)[1].split("/", 1)
            docs = self.collections.setdefault(collection, {})
            if kwargs["params"].get("currentDocument.exists") == "true" and doc_id not in docs:
                return make_response(404, {"error": {"status": "NOT_FOUND"}})
            docs.setdefault(doc_id, {}).update(decode_fields(kwargs["json"]["fields"]))
            return make_response(200, {})
        return make_response(200, {})


@pytest.fixture
def unconfigured_config():
    return Config()


@pytest.fixture
def configured_config():
    return Config(
        firebase_api_key="test-key",
        firebase_project_id="demo",
        poll_interval_secs=0.01,
        request_timeout=1.0,
    )


@pytest.fixture
def fake_firestore():
    return FakeFirestore()


@pytest.fixture
def remote(configured_config, fake_firestore):
    session = MagicMock()
    session.request.side_effect = fake_firestore.request
    return RemoteSyncClient(configured_config, session=session)


@pytest.fixture
def offline_remote(unconfigured_config):
    session = MagicMock()
    return RemoteSyncClient(unconfigured_config, session=session)


@pytest.fixture
def cache():
    with tempfile.TemporaryDirectory() as tmp:
        yield LocalCache(str(Path(tmp) / "state.db"))
