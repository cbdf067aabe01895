"""
Shared pytest fixtures for nirirules tests.
"""

import pytest
from pubsub import pub

from nirirules.protocol import Reply, Window


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without sockets")
    config.addinivalue_line("markers", "integration: tests over real socket pairs")


@pytest.fixture(autouse=True)
def clean_bus():
    """Drop every bus listener after each test."""
    yield
    pub.unsubAll()


@pytest.fixture
def make_window():
    """Factory fixture for creating window snapshots."""

    def factory(
        id=1,
        title=None,
        app_id=None,
        pid=None,
        is_focused=False,
        is_floating=False,
        is_urgent=False,
    ):
        return Window(
            id=id,
            title=title,
            app_id=app_id,
            pid=pid,
            is_focused=is_focused,
            is_floating=is_floating,
            is_urgent=is_urgent,
        )

    return factory


class FakeConnection:
    """Records sent requests and answers from a script of replies."""

    def __init__(self, replies=None):
        self.sent = []
        self.replies = list(replies or [])
        self.connected = True

    def send(self, request):
        self.sent.append(request)
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply
        return Reply(ok=True, response="Handled")

    def close(self):
        self.connected = False


@pytest.fixture
def fake_connection():
    """Connection that acknowledges everything unless given other replies."""
    return FakeConnection
