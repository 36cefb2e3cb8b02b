import fakeredis
import pytest
from fastapi.testclient import TestClient

from vanish.core.config import Settings
from vanish.main import create_app
from vanish.services.gate import AccessGate
from vanish.storage.blob_store import BlobStore
from vanish.storage.session_store import SessionStore

START = 1_700_000_000.0


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = START):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        INVITE_SECRET="test-invite-secret",
        ATTACHMENT_UPLOAD_SECRET="test-upload-secret",
        ATTACHMENT_DOWNLOAD_SECRET="test-download-secret",
        attachment_max_bytes=64 * 1024,
        log_level="WARNING",
    )


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server):
    client = fakeredis.FakeRedis(server=redis_server, decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def blob_store(clock, settings):
    store = BlobStore(
        max_size_bytes=settings.attachment_max_bytes,
        default_ttl_ms=settings.attachment_default_ttl_ms,
        clock=clock,
        start_sweeper=False,
    )
    yield store
    store.close()


@pytest.fixture
def session_store(redis_client, clock):
    return SessionStore(redis_client, clock=clock)


@pytest.fixture
def gate(settings, session_store, blob_store, clock):
    return AccessGate(settings, session_store, blob_store, clock=clock)


@pytest.fixture
def client(settings, redis_client, clock):
    app = create_app(settings=settings, redis_client=redis_client, clock=clock)
    with TestClient(app) as c:
        yield c
