"""CLI entry point for the scheduling & quotation agent.

For production, use the FastAPI server (src/server.py).

Usage:
    uv run python -m src.main ingest
    uv run python -m src.main validate "Can I book a cleaning next Sunday at 10am?"
    uv run python -m src.main quote "move-out cleaning"
    uv run python -m src.main --debug validate "..."    # shows node-level logs
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from src.config import QDRANT_COLLECTION
from src.executor import ValidationExecutionError
from src.ingest import ingest_documents
from src.quotation import create_quotation_graph, run_quotation
from src.scheduling import create_scheduling_graph, run_scheduling_validation
from src.services.document_store import DocumentStore
from src.services.sandbox_client import PistonClient, SandboxAPIError

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(logging.DEBUG if debug else logging.INFO)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cleaning services scheduling & quotation agent")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages, including generated code and HTTP requests",
    )
    parser.add_argument(
        "--collection", default=QDRANT_COLLECTION,
        help=f"Qdrant collection to use (default: {QDRANT_COLLECTION})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ingest", help="Seed the collection with services and scheduling rules")

    validate = sub.add_parser("validate", help="Validate a scheduling request against the rules")
    validate.add_argument("inquiry", help="Free-text scheduling request from the customer")

    quote = sub.add_parser("quote", help="Draft a quotation for a requested service")
    quote.add_argument("user_input", nargs="?", default="move-out cleaning")
    return parser


def _run_ingest(store: DocumentStore, args: argparse.Namespace) -> int:
    added = ingest_documents(store, args.collection)
    print("Documents added." if added else "Documents already present; nothing to do.")
    return 0


def _run_validate(store: DocumentStore, args: argparse.Namespace) -> int:
    sandbox = PistonClient()
    try:
        graph = create_scheduling_graph(store, sandbox, collection=args.collection)
        result = run_scheduling_validation(graph, args.inquiry)
    except (ValidationExecutionError, SandboxAPIError) as e:
        logger.error("Scheduling validation could not be executed: %s", e)
        print(f"Validation could not be executed: {e}")
        return 2
    finally:
        sandbox.close()

    print(f"Customer inquiry: {args.inquiry}")
    print(f"Status: {result['status']}")
    for error in result["validation_errors"]:
        print(f"  • {error}")
    return 0


def _run_quote(store: DocumentStore, args: argparse.Namespace) -> int:
    graph = create_quotation_graph(store, collection=args.collection)
    result = run_quotation(graph, args.user_input)
    print(f"User Input: {result['user_input']}")
    print(f"Status: {result['status']}")
    print("\n" + result["final_quotation"])
    return 0


COMMANDS = {"ingest": _run_ingest, "validate": _run_validate, "quote": _run_quote}


def main(argv: list[str] | None = None) -> int:
    """Run one CLI command and return the process exit status."""
    args = _build_parser().parse_args(argv)

    load_dotenv()
    _configure_logging(debug=args.debug)

    store = DocumentStore()
    try:
        return COMMANDS[args.command](store, args)
    except Exception as e:
        # Full traceback only with --debug
        logger.error("Command %r failed: %s", args.command, e, exc_info=args.debug)
        print(f"Sorry, something went wrong: {e}")
        return 1
    finally:
        store.client.close()


if __name__ == "__main__":
    sys.exit(main())
