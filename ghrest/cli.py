"""Command line entry point: issue one GitHub REST call and print the result."""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, TextIO

from .config.exceptions import ConfigurationError
from .config.loader import load_settings
from .config.models import LogLevel
from .config.utils import configure_logging
from .context import GitHubContext
from .github.auth import PersonalAccessTokenAuth
from .github.exceptions import GitHubError
from .github.pagination import PagedResult
from .github.request import HttpMethod

logger = logging.getLogger(__name__)

TOKEN_ENV = "GITHUB_TOKEN"  # nosec B105


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghrest",
        description="Issue a GitHub REST API call",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Get a repository
  python -m ghrest GET repos/octocat/hello-world
  # List every open issue across all pages
  python -m ghrest GET repos/octocat/hello-world/issues -q state=open --paginate
  # Download a file as raw bytes
  python -m ghrest GET repos/octocat/hello-world/contents/README \\
      --accept application/vnd.github.raw
  # Create a label (reads GITHUB_TOKEN)
  python -m ghrest POST repos/me/repo/labels \\
      --data '{"name": "bug", "color": "d73a4a"}'""",
    )
    parser.add_argument(
        "method", type=str.upper, choices=[m.value for m in HttpMethod]
    )
    parser.add_argument("path", help="API path or absolute URL")
    parser.add_argument("--config", help="Configuration file path")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=[level.value for level in LogLevel],
        help="Override the configured log level",
    )
    parser.add_argument(
        "-q",
        "--query",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter, may be repeated",
    )
    parser.add_argument("--data", help="JSON request body")
    parser.add_argument("--accept", help="Accept header (media type)")
    parser.add_argument(
        "--paginate", action="store_true", help="Follow all pages of a list result"
    )
    parser.add_argument(
        "--max-pages", type=int, help="Stop after this many pages (implies --paginate)"
    )
    return parser


def parse_query(pairs: list[str]) -> dict[str, str]:
    """Turn ``key=value`` arguments into query parameters."""
    query: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Query parameter must look like key=value: {pair!r}")
        query[key] = value
    return query


def _write_payload(payload: Any, out: TextIO) -> None:
    if payload is None:
        return
    if isinstance(payload, bytes):
        buffer = getattr(out, "buffer", None)
        if buffer is not None:
            buffer.write(payload)
            buffer.flush()
        else:
            out.write(payload.decode("utf-8", errors="replace"))
        return
    out.write(json.dumps(payload, indent=2, default=str))
    out.write("\n")


async def run(args: argparse.Namespace, out: TextIO | None = None) -> int:
    """Execute the parsed command. Returns the process exit status."""
    out = out or sys.stdout
    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging_config = settings.logging
    if args.log_level:
        logging_config = logging_config.model_copy(
            update={"level": LogLevel(args.log_level)}
        )
    configure_logging(logging_config)

    try:
        query = parse_query(args.query)
        body = json.loads(args.data) if args.data else None
    except ValueError as e:
        print(f"Invalid arguments: {e}", file=sys.stderr)
        return 2

    token = os.environ.get(TOKEN_ENV)
    auth = PersonalAccessTokenAuth(token) if token else None
    headers = {"Accept": args.accept} if args.accept else None
    paginate = args.paginate or args.max_pages is not None

    async with GitHubContext.from_settings(settings, auth=auth) as context:
        try:
            if paginate and args.method == HttpMethod.GET.value:
                paged = await context.paginate(
                    args.path,
                    query=query,
                    headers=headers,
                    operation="cli",
                    max_pages=args.max_pages,
                )
                _write_payload(await paged.collect(), out)
            else:
                descriptor = await context.request(
                    args.method,
                    args.path,
                    query=query,
                    body=body,
                    headers=headers,
                    operation="cli",
                )
                result = await context.invoker.invoke(descriptor)
                if isinstance(result, PagedResult):
                    logger.info(
                        "More pages available; pass --paginate to fetch them all"
                    )
                    result = result.first
                _write_payload(result.payload, out)
        except GitHubError as e:
            logger.error(f"Request failed: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except ValueError as e:
            print(f"Invalid arguments: {e}", file=sys.stderr)
            return 2
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        status = asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        status = 130
    sys.exit(status)
