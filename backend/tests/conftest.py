"""Shared test fixtures for the backend tests."""

import os
import tempfile

# db.py and main.py read their settings at import time - point them at
# throwaway locations before any app module is imported by the collector.
_TMP = tempfile.mkdtemp(prefix="article-whisperer-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["CREDENTIAL_PATH"] = os.path.join(_TMP, "credentials.json")
os.environ["GOOGLE_API_KEY"] = ""

from unittest.mock import MagicMock

import pytest

from credentials import CredentialStore
from llm import GeminiGateway

TEST_KEY = "test-key-0123456789"


def gemini_reply(text: str) -> MagicMock:
    """A fake requests.Response carrying one Gemini candidate."""
    resp = MagicMock()
    resp.ok = True
    resp.status_code = 200
    resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return resp


def gemini_error(status: int, message=None, reason: str = "Bad Request") -> MagicMock:
    resp = MagicMock()
    resp.ok = False
    resp.status_code = status
    resp.reason = reason
    if message is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = {"error": {"code": status, "message": message}}
    return resp


@pytest.fixture
def store(tmp_path) -> CredentialStore:
    return CredentialStore(str(tmp_path / "credentials.json"))


@pytest.fixture
def keyed_store(store) -> CredentialStore:
    store.set(TEST_KEY)
    return store


@pytest.fixture
def gateway(keyed_store) -> GeminiGateway:
    return GeminiGateway(keyed_store)


@pytest.fixture
def keyless_gateway(store) -> GeminiGateway:
    return GeminiGateway(store)
