"""Interactive command-line chat for the Baichuan API.

Reads one line at a time, sends it as a single chat request and prints the
assistant's reply. Errors are reported and the loop continues.
"""

import argparse
import asyncio
import logging
import os
from typing import Callable

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from baichuan_cli import __version__
from baichuan_cli.client import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT, BaichuanClient
from baichuan_cli.config import DEFAULT_HISTORY_FILE, ClientConfig
from baichuan_cli.errors import BaichuanError
from baichuan_cli.history import ReplSession
from baichuan_cli.models import Model, ResponseEnvelope, UsageInfo

logger = logging.getLogger(__name__)

PROMPT = "❯ "
LOG_LEVELS = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


def setup_logging(level: str) -> None:
    """Route all logging through rich at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def render_response(resp: ResponseEnvelope, console: Console, err_console: Console) -> None:
    """Print assistant messages, or the service error if the code is not success."""
    error = resp.error
    if error is not None:
        err_console.print(f"Failed to request API: {error}", style="red", markup=False, highlight=False)
        return

    for message in resp.messages:
        console.print(f"[{message.role}]: {message.content}", markup=False, highlight=False)


def print_usage(usage: UsageInfo | None, console: Console) -> None:
    if usage is None:
        console.print("No usage reported yet.")
        return
    console.print(
        f"Tokens: prompt {usage.prompt_tokens:,}, "
        f"answer {usage.answer_tokens:,}, total {usage.total_tokens:,}"
    )


def run_repl(
    client: BaichuanClient,
    session: ReplSession,
    console: Console | None = None,
    err_console: Console | None = None,
    read_line: Callable[[str], str] = input,
) -> None:
    """Run the prompt loop until EOF, Ctrl-C at the prompt, or /exit.

    Args:
        client: Client used for every request.
        session: History session; loaded before and saved after the loop.
        console: Where replies go (stdout if None).
        err_console: Where errors go (stderr if None).
        read_line: Line reader, ``input`` by default.
    """
    console = console or Console()
    err_console = err_console or Console(stderr=True)
    last_usage: UsageInfo | None = None

    session.load()
    try:
        while True:
            try:
                line = read_line(PROMPT).strip()
            except (EOFError, KeyboardInterrupt):
                logger.info("👋")
                break

            if not line:
                continue
            session.record(line)

            if line.lower() in {"/exit", "/quit"}:
                logger.info("👋")
                break
            if line.lower() == "/usage":
                print_usage(last_usage, console)
                continue

            try:
                resp = asyncio.run(client.chat([line]))
            except KeyboardInterrupt:
                # asyncio.run cancels the in-flight request before re-raising
                err_console.print("Request cancelled.", style="yellow")
                continue
            except BaichuanError as e:
                err_console.print(f"Failed to request API: {e}", style="red", markup=False, highlight=False)
                continue

            if resp.usage is not None:
                last_usage = resp.usage
            render_response(resp, console, err_console)
    finally:
        session.save()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="baichuan-cli",
        description="Chat with Baichuan models from the terminal",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--api-key",
        default=os.environ.get("BAICHUAN_API_KEY") or os.environ.get("API_KEY"),
        help="API key (default: $BAICHUAN_API_KEY or $API_KEY)",
    )
    parser.add_argument(
        "--secret-key",
        default=os.environ.get("BAICHUAN_SECRET_KEY") or os.environ.get("SECRET_KEY"),
        help="Secret key used to sign requests (default: $BAICHUAN_SECRET_KEY or $SECRET_KEY)",
    )
    parser.add_argument(
        "-m",
        "--model",
        type=Model.parse,
        default=Model.BAICHUAN2_53B,
        help=f"Model to use (choices: {', '.join(m.value for m in Model)}; default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Per-request timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--endpoint",
        default=DEFAULT_ENDPOINT,
        help=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--history-file",
        default=DEFAULT_HISTORY_FILE,
        help=f"Input history file (default: {DEFAULT_HISTORY_FILE})",
    )
    parser.add_argument(
        "--lenient-codes",
        action="store_true",
        help="Accept response codes the client does not know instead of failing",
    )
    return parser


def config_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> ClientConfig:
    if not args.api_key:
        parser.error("--api-key is required (or set API_KEY)")
    if not args.secret_key:
        parser.error("--secret-key is required (or set SECRET_KEY)")
    try:
        return ClientConfig(
            api_key=args.api_key,
            secret_key=args.secret_key,
            model=args.model,
            endpoint=args.endpoint,
            timeout=args.timeout,
            strict_codes=not args.lenient_codes,
            history_file=args.history_file,
            log_level=args.log_level,
        )
    except ValueError as e:
        parser.error(str(e))


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    # Keys may live in a local .env
    load_dotenv(override=False)

    parser = build_parser()
    args = parser.parse_args(argv)
    config = config_from_args(parser, args)

    setup_logging(config.log_level)
    run_repl(config.create_client(), ReplSession(config.history_file))


if __name__ == "__main__":
    main()
