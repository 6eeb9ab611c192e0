#!/usr/bin/env python3
"""
Service Bus Push - CLI Tool

Publish a JSON file as a single message to an Azure Service Bus queue or topic.
The connection string is read from SB_CONNECTION_STRING (or SB_ENDPOINT),
optionally loaded from a .env file in the current directory.
"""

import argparse
import asyncio
import logging
import os
import sys
import uuid
from typing import List, Optional

from dotenv import load_dotenv

from push_client import (
    QUEUE,
    TOPIC,
    Destination,
    PushError,
    SendResult,
    ServiceBusPushClient,
    get_connection_string,
    load_json_payload,
)


class PushArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that prints the full help on errors and exits with 1."""

    def error(self, message: str) -> None:  # type: ignore[override]
        print(message, file=sys.stderr)
        self.print_help(sys.stderr)
        sys.exit(1)


def build_parser() -> PushArgumentParser:
    parser = PushArgumentParser(
        prog="push",
        description="CLI para publicar mensagens JSON em filas ou tópicos do Azure Service Bus",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
        epilog="""
Exemplos:
  push --destination sq.pismo.onboarding.succeeded --type queue --payload payload.json
  push --queue sq.pismo.onboarding.succeeded --payload payload.json
  push -D sq.pismo.onboarding.succeeded -Y queue -P payload.json
  push --topic st.pismo.events --payload payload.json --cid abc-123

A conexão é lida de SB_CONNECTION_STRING (ou SB_ENDPOINT), inclusive de um arquivo .env.
        """,
    )

    parser.add_argument(
        "--help",
        "-h",
        "-H",
        action="help",
        help="Mostra esta ajuda e sai",
    )
    parser.add_argument(
        "--queue",
        "-q",
        "-Q",
        help="Nome da fila do Azure Service Bus",
    )
    parser.add_argument(
        "--topic",
        "-t",
        "-T",
        help="Nome do tópico do Azure Service Bus",
    )
    parser.add_argument(
        "--destination",
        "-d",
        "-D",
        help="Destino unificado (nome da fila ou tópico)",
    )
    parser.add_argument(
        "--type",
        "-y",
        "-Y",
        help="Tipo do destino unificado: queue ou topic",
    )
    parser.add_argument(
        "--payload",
        "-p",
        "-P",
        help="Caminho do arquivo JSON a ser enviado",
    )
    parser.add_argument(
        "--correlation-id",
        "--cid",
        dest="correlation_id",
        help="Correlation ID para rastreamento; se omitido, um UUID v4 será gerado",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Habilita logs de depuração do SDK do Service Bus",
    )
    return parser


def _supplied(value: Optional[str]) -> bool:
    return bool(value)


def _given(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def validate_args(args: argparse.Namespace) -> Optional[str]:
    """Return an error message for invalid arguments, or None."""
    if not _given(args.payload):
        return "parâmetro obrigatório ausente: --payload"

    using_unified = _supplied(args.destination) or _supplied(args.type)
    using_legacy = _supplied(args.queue) or _supplied(args.topic)

    if using_unified and using_legacy:
        return "não misture --destination/--type com --queue/--topic"

    if using_unified:
        if not (_given(args.destination) and _given(args.type)):
            return "para o modo unificado informe ambos: --destination e --type"
        if args.type.strip().lower() not in (QUEUE, TOPIC):
            return "--type deve ser 'queue' ou 'topic'"
        return None

    if not _given(args.queue) and not _given(args.topic):
        return "informe --queue ou --topic (apenas um)"
    if _supplied(args.queue) and _supplied(args.topic):
        return "use apenas um destino: --queue ou --topic"

    return None


def resolve_destination(args: argparse.Namespace) -> Destination:
    """Map validated arguments to a destination name and kind."""
    if _given(args.destination):
        return Destination(args.destination, args.type.strip().lower())
    if _given(args.queue):
        return Destination(args.queue, QUEUE)
    return Destination(args.topic, TOPIC)


def resolve_correlation_id(value: Optional[str]) -> str:
    if value and value.strip():
        return value.strip()
    return str(uuid.uuid4())


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("azure").setLevel(level)


async def publish(
    connection_string: str,
    destination: Destination,
    body: object,
    correlation_id: str,
) -> SendResult:
    async with ServiceBusPushClient(connection_string) as client:
        return await client.send(destination, body, correlation_id)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv(os.path.join(os.getcwd(), ".env"))

    parser = build_parser()
    args = parser.parse_args(argv)

    error = validate_args(args)
    if error:
        parser.error(error)

    configure_logging(args.verbose)

    try:
        connection_string = get_connection_string()
        body = load_json_payload(args.payload)
        correlation_id = resolve_correlation_id(args.correlation_id)
        destination = resolve_destination(args)

        result = asyncio.run(publish(connection_string, destination, body, correlation_id))

        print(result.describe())
        return 0

    except PushError as e:
        print(f"Erro: {e.message}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Erro: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
