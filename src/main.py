# src/main.py
"""CLI entry point: serve and analyze commands.

Usage:
    docreview serve [--host HOST] [--port PORT]
    docreview analyze <file> --provider openai --api-key KEY [options]
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import logging
import sys
from pathlib import Path

from docreview.config.settings import Settings, load_settings
from docreview.core.models import ProviderConfig, ProviderKind
from docreview.logging.logger import setup_logging
from docreview.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    settings = load_settings()
    _setup_logging(settings, args.verbose)

    try:
        return args.func(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="docreview",
        description=f"docreview v{__version__}: staged AI review of product documents",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default: PORT setting)")
    p_serve.set_defaults(func=_cmd_serve)

    # --- analyze ---
    p_analyze = subparsers.add_parser(
        "analyze", help="Analyze a single document locally and print the event stream",
    )
    p_analyze.add_argument("file", type=Path, help="Path to a PDF or text document")
    p_analyze.add_argument(
        "--provider", choices=[k.value for k in ProviderKind], default=ProviderKind.OPENAI.value,
        help="AI provider (default: openai)",
    )
    p_analyze.add_argument("--api-key", required=True, help="Provider API key")
    p_analyze.add_argument("--custom-url", default=None, help="Chat-completions endpoint URL")
    p_analyze.add_argument("--custom-model", default=None, help="Model name override")
    p_analyze.add_argument(
        "--no-progress", action="store_true",
        help="Do not print stage_progress frames",
    )
    p_analyze.add_argument(
        "--calls-log", type=Path, default=None,
        help="Write provider call records to this JSON Lines file",
    )
    p_analyze.set_defaults(func=_cmd_analyze)

    return parser


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run the API under uvicorn."""
    import uvicorn

    from docreview.api.app import create_app

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Serving on %s:%d", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level="warning")
    return 0


def _cmd_analyze(args: argparse.Namespace, settings: Settings) -> int:
    file_path: Path = args.file
    if not file_path.is_file():
        logger.error("File not found: %s", file_path)
        return 1
    return asyncio.run(_run_analysis(args, settings))


async def _run_analysis(args: argparse.Namespace, settings: Settings) -> int:
    """Execute one fresh analysis, printing every frame to stdout."""
    from docreview.document.decoder import decode_document
    from docreview.llm.client import ProviderClient
    from docreview.pipeline.controller import StageController
    from docreview.session.store import SessionStore
    from docreview.streaming.emitter import StreamEmitter, stream_run
    from docreview.streaming.events import CompleteEvent, StageProgressEvent
    from docreview.tracking.call_logger import CallLogger

    file_path: Path = args.file
    text = decode_document(base64.b64encode(file_path.read_bytes()).decode("ascii"), file_path.name)
    config = ProviderConfig(
        provider=ProviderKind(args.provider),
        api_key=args.api_key,
        custom_api_url=args.custom_url,
        custom_model=args.custom_model,
    )

    calls = CallLogger()
    controller = StageController(
        ProviderClient(settings), SessionStore(), settings, call_logger=calls,
    )
    emitter = StreamEmitter()
    async for frame in stream_run(
        lambda: controller.start(text, file_path.name, config, emitter),
        emitter,
        exclude=(StageProgressEvent,) if args.no_progress else (),
    ):
        sys.stdout.write(frame)
        sys.stdout.flush()

    if args.calls_log:
        calls.save(args.calls_log)
        logger.info("Wrote %d call records to %s", calls.total_calls, args.calls_log)
    return 0 if isinstance(emitter.last_event, CompleteEvent) else 1


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage. Logs go to stderr."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        stream=sys.stderr,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
