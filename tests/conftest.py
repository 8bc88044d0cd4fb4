"""Pytest configuration and shared fixtures."""

import os
import sys
from pathlib import Path

import httpx
import pytest

# Ensure source tree is importable without editable install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


def pytest_configure(config):
    """Configure pytest markers and environment for tests."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")

    # These MUST override any developer shell/.env values to keep the test run deterministic.
    os.environ["ENVIRONMENT"] = "test"
    os.environ["CHATBOT_PROVIDER"] = "fake"
    os.environ["USE_FAKE_PROVIDERS"] = "false"
    os.environ["API_BASE_URL"] = "http://localhost:8000/api"
    os.environ["API_TOKEN"] = ""
    os.environ["LOG_JSON"] = "false"


@pytest.fixture(autouse=True)
def block_external_http(monkeypatch):
    """Fail the fast lane if code tries to hit the public internet."""

    allowed_hosts = {"test", "testserver", "localhost", "127.0.0.1", "0.0.0.0"}

    async def _async_guard(self, method, url, *args, **kwargs):  # type: ignore[no-untyped-def]
        u = httpx.URL(url) if not isinstance(url, httpx.URL) else url
        if u.scheme in {"http", "https"} and (u.host or "") not in allowed_hosts:
            raise RuntimeError(f"External HTTP blocked in tests: {u!s}")
        return await _orig_async_request(self, method, url, *args, **kwargs)

    _orig_async_request = httpx.AsyncClient.request
    monkeypatch.setattr(httpx.AsyncClient, "request", _async_guard, raising=True)

    yield


@pytest.fixture(autouse=True)
def isolated_checkpoints(monkeypatch, tmp_path):
    """Point the settings-level checkpoint directory at a per-test temp dir."""
    from guestchat.config import reset_settings_cache

    monkeypatch.setenv("CHECKPOINT_DIR", str(tmp_path / "checkpoints"))
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio tests on asyncio (the orchestrator schedules asyncio tasks)."""
    return "asyncio"


@pytest.fixture
def backend():
    from guestchat.transport.fake import FakeChatbotBackend

    return FakeChatbotBackend(ready_after_messages=3)


@pytest.fixture
def checkpoint_store(tmp_path):
    from guestchat.session.checkpoints import CheckpointStore

    return CheckpointStore(tmp_path / "store")


@pytest.fixture
def notices():
    from guestchat.notifications import NoticeCollector

    return NoticeCollector()


@pytest.fixture
async def make_orchestrator(anyio_backend, backend, checkpoint_store, notices):
    """Build orchestrators wired to the fake backend with a short auto-start delay."""
    from guestchat.session.orchestrator import ConversationOrchestrator
    from guestchat.transport.client import ChatbotClient

    created = []

    def _make(campaign_id: str = "camp-1", **kwargs):
        client = ChatbotClient(
            base_url="http://test/api", api_token="tok", transport=backend.transport()
        )
        kwargs.setdefault("checkpoints", checkpoint_store)
        kwargs.setdefault("notify", notices)
        kwargs.setdefault("auto_start_delay", 0.01)
        kwargs.setdefault("existence_check_attempts", 1)
        orchestrator = ConversationOrchestrator(campaign_id, client, owns_client=True, **kwargs)
        created.append(orchestrator)
        return orchestrator

    yield _make

    for orchestrator in created:
        await orchestrator.aclose()
