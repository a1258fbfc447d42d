from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import TextIO

from .models import DomainResult


def _supports_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return stream.isatty()


def _ansi(text: str, code: str, *, enabled: bool) -> str:
    if not enabled:
        return text
    return f"\033[{code}m{text}\033[0m"


def _scan_lines(stream: TextIO) -> list[str]:
    return [line.strip() for line in stream if line.strip()]


def _stdin_is_piped() -> bool:
    try:
        return not sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def read_domains(file: str | None, args: list[str]) -> list[str]:
    """Domains from ``file``, else from piped stdin, else from ``args``."""
    if file:
        with Path(file).open(encoding="utf-8") as fh:
            return _scan_lines(fh)
    if _stdin_is_piped():
        return _scan_lines(sys.stdin)
    return list(args)


def render_result(result: DomainResult, *, verbose: bool, color: bool) -> str:
    if result.status == "available":
        return f"{result.domain:<40} {_ansi('available', '1;32', enabled=color)}"
    if result.status == "registered":
        line = f"{result.domain:<40} {_ansi('registered', '1;31', enabled=color)}"
        if verbose:
            if result.registrar:
                line += f"  registrar: {result.registrar}"
            if result.expiry is not None:
                line += f"  expires: {result.expiry.date().isoformat()}"
            line += f"  [{result.source}]"
        return line
    return f"{result.domain:<40} {_ansi('lookup failed', '1;33', enabled=color)}: {result.error}"


def _write_json(results: list[DomainResult]) -> None:
    payload = [r.model_dump(mode="json", exclude_none=True) for r in results]
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        return
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="domain-lookup",
        description="Check domain registration status over RDAP with WHOIS fallback",
        epilog=(
            "examples:\n"
            "  domain-lookup example.com example.net\n"
            "  domain-lookup -f domains.txt -j\n"
            "  echo 'example.com' | domain-lookup"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("domains", nargs="*", help="Domains to check")
    parser.add_argument("-f", "--file", help="Read domains from a file, one per line")
    parser.add_argument("-c", "--concurrency", type=int, default=5, help="Concurrent lookups (default: %(default)s)")
    parser.add_argument("-t", "--timeout", type=float, default=10.0, help="Per-query timeout in seconds (default: %(default)s)")
    parser.add_argument("-j", "--json", action="store_true", help="Print results as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show registrar, expiry date and source")
    parser.add_argument("--log-dir", help="Append a run summary to <log-dir>/results.jsonl")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    from pydantic import ValidationError

    from .checker import check_domains
    from .models import LookupOptions

    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.debug)

    try:
        domains = read_domains(args.file, args.domains)
    except OSError as exc:
        sys.stderr.write(f"Error: failed to read {args.file}: {exc}\n")
        return 1
    if not domains:
        parser.print_usage(sys.stderr)
        return 1

    try:
        options = LookupOptions(
            concurrency=args.concurrency,
            timeout_seconds=args.timeout,
            run_log_dir=args.log_dir,
        )
    except ValidationError as exc:
        sys.stderr.write(f"Invalid options: {exc}\n")
        return 2

    results = asyncio.run(check_domains(domains, options))

    if args.json:
        _write_json(results)
        return 0

    has_error = False
    for result in results:
        if result.status == "unknown":
            has_error = True
            sys.stderr.write(render_result(result, verbose=args.verbose, color=_supports_color(sys.stderr)) + "\n")
        else:
            sys.stdout.write(render_result(result, verbose=args.verbose, color=_supports_color(sys.stdout)) + "\n")
    return 1 if has_error else 0


if __name__ == "__main__":
    raise SystemExit(main())
