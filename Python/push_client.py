"""
Service Bus Push - Python Client Library

Loads JSON payloads from disk and publishes them as single messages to Azure
Service Bus queues or topics. The connection string comes from the environment
(SB_CONNECTION_STRING, or SB_ENDPOINT as a fallback).
"""

import json
import logging
import os
import stat
from typing import Any

from azure.servicebus import ServiceBusMessage
from azure.servicebus.aio import ServiceBusClient


log = logging.getLogger(__name__)

CONNECTION_STRING_ENV = "SB_CONNECTION_STRING"
ENDPOINT_ENV = "SB_ENDPOINT"
JSON_CONTENT_TYPE = "application/json"

QUEUE = "queue"
TOPIC = "topic"
DESTINATION_KINDS = (QUEUE, TOPIC)

# Labels shown to the user
KIND_LABELS = {QUEUE: "fila", TOPIC: "tópico"}


def get_connection_string() -> str:
    """Return the trimmed connection string, preferring SB_CONNECTION_STRING."""
    for name in (CONNECTION_STRING_ENV, ENDPOINT_ENV):
        value = (os.environ.get(name) or "").strip()
        if value:
            return value
    raise ConfigError(
        "variável de ambiente SB_ENDPOINT (ou SB_CONNECTION_STRING) não encontrada. Configure no .env"
    )


def _reject_constant(token: str) -> Any:
    # NaN and Infinity are Python extensions, not JSON
    raise ValueError(f"invalid JSON constant: {token}")


def load_json_payload(path: str) -> Any:
    """
    Read a file and parse it as JSON.

    Args:
        path: File path, relative paths are resolved against the working directory

    Returns:
        The parsed JSON value

    Raises:
        PayloadError: if the file is missing, not a regular file, unreadable or not JSON
    """
    resolved = os.path.abspath(path)

    try:
        st = os.stat(resolved)
    except OSError:
        raise PayloadError(f"arquivo não encontrado: {resolved}")
    if not stat.S_ISREG(st.st_mode):
        raise PayloadError(f"caminho não é um arquivo: {resolved}")

    try:
        with open(resolved, "rb") as f:
            content = f.read()
    except OSError:
        raise PayloadError(f"falha ao ler o arquivo: {resolved}")

    try:
        return json.loads(content, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        raise PayloadError(f"conteúdo não é um JSON válido: {resolved}")


class Destination:
    """A named queue or topic."""

    def __init__(self, name: str, kind: str):
        if kind not in DESTINATION_KINDS:
            raise ValueError(f"unknown destination kind: {kind!r}")
        self.name = name.strip()
        self.kind = kind

    @property
    def label(self) -> str:
        return KIND_LABELS[self.kind]

    def __repr__(self) -> str:
        return f"Destination(name={self.name!r}, kind={self.kind!r})"


class ServiceBusPushClient:
    """
    Async client that publishes one JSON message per send call.
    """

    def __init__(self, connection_string: str):
        """
        Initialize the client.

        Args:
            connection_string: Service Bus connection string (Endpoint=sb://...)
        """
        try:
            self._client = ServiceBusClient.from_connection_string(conn_str=connection_string)
        except Exception as e:
            raise SendError(f"erro ao criar cliente do Service Bus: {e}") from e

    def _get_sender(self, destination: Destination) -> Any:
        if destination.kind == QUEUE:
            return self._client.get_queue_sender(queue_name=destination.name)
        return self._client.get_topic_sender(topic_name=destination.name)

    async def send(
        self,
        destination: Destination,
        body: Any,
        correlation_id: str,
    ) -> "SendResult":
        """
        Send a single JSON message.

        Args:
            destination: Queue or topic to publish to
            body: Parsed JSON value, sent as compact JSON text
            correlation_id: Correlation ID attached to the message

        Returns:
            SendResult describing what was sent
        """
        message = ServiceBusMessage(
            body=json.dumps(body, separators=(",", ":"), ensure_ascii=False),
            content_type=JSON_CONTENT_TYPE,
            correlation_id=correlation_id,
        )

        try:
            sender = self._get_sender(destination)
        except Exception as e:
            raise SendError(f"erro ao criar sender: {e}") from e

        sent = False
        try:
            log.debug("Sending message to %s %s (correlationId=%s)", destination.kind, destination.name, correlation_id)
            await sender.send_messages(message)
            sent = True
        except Exception as e:
            raise SendError(f"erro ao enviar mensagem: {e}") from e
        finally:
            try:
                await sender.close()
            except Exception:
                # Keep the send error as the one reported
                if sent:
                    raise
                log.warning("Failed to close sender for %s", destination.name, exc_info=True)

        return SendResult(destination=destination, correlation_id=correlation_id)

    async def close(self) -> None:
        """Close the underlying Service Bus client."""
        await self._client.close()

    async def __aenter__(self) -> "ServiceBusPushClient":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            await self.close()
        except Exception:
            if exc is None:
                raise
            log.warning("Failed to close Service Bus client", exc_info=True)


class SendResult:
    """Result of a send operation."""

    def __init__(self, destination: Destination, correlation_id: str):
        self.destination = destination
        self.correlation_id = correlation_id

    def describe(self) -> str:
        return (
            f"Mensagem enviada com sucesso para {self.destination.label}: "
            f"{self.destination.name} (correlationId={self.correlation_id})"
        )

    def __repr__(self) -> str:
        return f"SendResult(destination={self.destination!r}, correlation_id={self.correlation_id!r})"


class PushError(Exception):
    """Error raised while preparing or sending a message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigError(PushError):
    """Missing or blank connection configuration."""


class PayloadError(PushError):
    """Payload file is missing, unreadable or not JSON."""


class SendError(PushError):
    """Failure creating the client or sender, or sending the message."""
