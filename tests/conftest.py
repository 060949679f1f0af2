"""
Pytest configuration and shared fixtures for ContactBot tests.

Provides an in-memory MessagingClient/MessagingSession pair so the
supervisor, router and HTTP gateway can be exercised without a bridge.
"""
import asyncio
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from contact_bot.core.supervisor import SessionSupervisor
from contact_bot.modules.contacts.contact_store import ContactStore
from contact_bot.modules.whatsapp.messaging import (
    ConnectConfig,
    MessagingClient,
    MessagingSession,
    SessionEvent,
)

ADMIN_JID = "5511999999999@s.whatsapp.net"

_END = object()


class FakeSession(MessagingSession):
    """Session whose event stream is fed by the test through push()."""

    def __init__(self, user: Optional[str] = "5511000000000@s.whatsapp.net"):
        self._user = user
        self._queue: asyncio.Queue = asyncio.Queue()
        self.sent: List[Tuple[str, str]] = []
        self.presence: List[str] = []
        self.rejected: List[Tuple[str, str]] = []
        self.saved_credentials: List[Dict[str, Any]] = []
        self.fail_presence = False
        self.fail_send = False
        self.closed = False

    @property
    def user(self) -> Optional[str]:
        return self._user

    def push(self, event: SessionEvent):
        self._queue.put_nowait(event)

    def end_stream(self):
        self._queue.put_nowait(_END)

    async def events(self) -> AsyncIterator[SessionEvent]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item

    async def send_text(self, recipient: str, text: str) -> None:
        if self.fail_send:
            raise ConnectionError("send failed")
        self.sent.append((recipient, text))

    async def send_presence(self, state: str) -> None:
        if self.fail_presence:
            raise ConnectionError("presence failed")
        self.presence.append(state)

    async def reject_call(self, call_id: str, caller: str) -> None:
        self.rejected.append((call_id, caller))

    async def save_credentials(self, payload: Dict[str, Any]) -> None:
        self.saved_credentials.append(payload)

    async def close(self) -> None:
        self.closed = True
        self.end_stream()


class FakeMessagingClient(MessagingClient):
    """Hands out FakeSessions and records every lifecycle call."""

    def __init__(self):
        self.sessions: List[FakeSession] = []
        self.configs: List[ConnectConfig] = []
        self.resets = 0
        self.fail_connect = False
        self.closed = False

    @property
    def connects(self) -> int:
        return len(self.configs)

    @property
    def current(self) -> Optional[FakeSession]:
        return self.sessions[-1] if self.sessions else None

    async def fetch_latest_version(self) -> Tuple[int, ...]:
        return (2, 3000, 1015901307)

    async def connect(self, config: ConnectConfig) -> MessagingSession:
        self.configs.append(config)
        if self.fail_connect:
            raise ConnectionError("bridge unreachable")
        session = FakeSession()
        self.sessions.append(session)
        return session

    async def reset_credentials(self) -> None:
        self.resets += 1

    async def close(self) -> None:
        self.closed = True


async def settle(rounds: int = 10):
    """Let pending tasks (event pump, handlers) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def age(supervisor: SessionSupervisor, seconds: float):
    """Pretend the last activity happened `seconds` ago."""
    supervisor.state.last_activity_at -= timedelta(seconds=seconds)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store(tmp_path):
    """Empty ContactStore backed by a temp directory."""
    s = ContactStore(tmp_path / "data")
    s.load()
    return s


@pytest.fixture
def fake_client():
    return FakeMessagingClient()


@pytest.fixture
def supervisor(fake_client):
    """Supervisor that has not been started (no background tasks)."""
    return SessionSupervisor(fake_client, admin_jid=ADMIN_JID, server_name="Test")


@pytest_asyncio.fixture
async def running_supervisor(fake_client):
    """Started supervisor with one open session; heartbeat effectively idle."""
    sup = SessionSupervisor(
        fake_client,
        admin_jid=ADMIN_JID,
        server_name="Test",
        heartbeat_interval=3600,
    )
    await sup.start()
    yield sup
    await sup.stop()
