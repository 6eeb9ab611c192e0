from __future__ import annotations

import pytest

import push_client


class FakeSender:
    def __init__(self, bus: "FakeServiceBus", name: str, kind: str) -> None:
        self.bus = bus
        self.name = name
        self.kind = kind
        self.messages = []
        self.close_calls = 0

    async def send_messages(self, message) -> None:
        if self.bus.send_error is not None:
            raise self.bus.send_error
        self.messages.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        if self.bus.sender_close_error is not None:
            raise self.bus.sender_close_error


class FakeClient:
    def __init__(self, bus: "FakeServiceBus", conn_str: str) -> None:
        self.bus = bus
        self.conn_str = conn_str
        self.senders = []
        self.close_calls = 0

    def _sender(self, name: str, kind: str) -> FakeSender:
        if self.bus.sender_error is not None:
            raise self.bus.sender_error
        sender = FakeSender(self.bus, name, kind)
        self.senders.append(sender)
        return sender

    def get_queue_sender(self, queue_name: str) -> FakeSender:
        return self._sender(queue_name, "queue")

    def get_topic_sender(self, topic_name: str) -> FakeSender:
        return self._sender(topic_name, "topic")

    async def close(self) -> None:
        self.close_calls += 1
        if self.bus.client_close_error is not None:
            raise self.bus.client_close_error


class FakeServiceBus:
    """Stands in for azure.servicebus.aio.ServiceBusClient."""

    def __init__(self) -> None:
        self.clients = []
        self.send_error = None
        self.sender_error = None
        self.sender_close_error = None
        self.client_close_error = None

    def from_connection_string(self, conn_str: str) -> FakeClient:
        client = FakeClient(self, conn_str)
        self.clients.append(client)
        return client

    @property
    def sent(self):
        return [m for c in self.clients for s in c.senders for m in s.messages]


@pytest.fixture
def fake_bus(monkeypatch):
    bus = FakeServiceBus()
    monkeypatch.setattr(push_client, "ServiceBusClient", bus)
    return bus


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    # Keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def connection_env(monkeypatch, workdir):
    monkeypatch.setenv("SB_CONNECTION_STRING", "Endpoint=sb://example.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=s")
    monkeypatch.delenv("SB_ENDPOINT", raising=False)
