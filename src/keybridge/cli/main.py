"""keybridge command-line entry point.

One invocation serves one command.  The request body is a JSON object
read in full from stdin (or ``--input``); the response is a single JSON
object on stdout.  Exit status is 0 on success and 1 on failure, in
which case the response carries an ``Error`` attribute.

Usage::

    keybridge Inspect < request.json
    keybridge -c /etc/keybridge/config.yaml GenerateKey < request.json
    keybridge -c config.yaml --validate-only
    keybridge --list-commands
    python -m keybridge Persist -i request.json
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

CONFIG_ENV_VAR = "KEYBRIDGE_CONFIG"


def _get_version() -> str:
    from keybridge import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keybridge",
        description="keybridge -- keystore backend for certificate lifecycle managers",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        metavar="PATH",
        help=f"Path to the configuration file (YAML or JSON). Defaults to ${CONFIG_ENV_VAR}.",
    )
    parser.add_argument(
        "-i",
        "--input",
        default=None,
        metavar="FILE",
        help="Read the request body from FILE instead of stdin.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (verbose logging on stderr).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "--list-commands",
        action="store_true",
        default=False,
        help="Print the supported command names and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "command",
        nargs="?",
        help="Command to run (e.g. Inspect, GenerateKey, Persist).",
    )
    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"keybridge: error: {message}", file=sys.stderr)


def _emit(response: dict[str, Any]) -> None:
    """Write the response object to stdout."""
    sys.stdout.write(json.dumps(response))
    sys.stdout.write("\n")
    sys.stdout.flush()


def _read_body(args: argparse.Namespace) -> Any:  # noqa: ANN401
    """Read and parse the JSON request body.

    An empty body is treated as an empty object.  The body must be
    UTF-8; a decoding failure propagates as :class:`UnicodeDecodeError`.
    """
    if args.input:
        raw = Path(args.input).read_text(encoding="utf-8")
    else:
        raw = sys.stdin.read()
    if not raw.strip():
        return {}
    return json.loads(raw)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs one command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    from keybridge.handlers.dispatcher import COMMANDS, EXIT_FAILURE

    if args.list_commands:
        for name in COMMANDS:
            print(name)
        sys.exit(0)

    # -- load & validate config ---
    config_file = args.config or os.environ.get(CONFIG_ENV_VAR) or None
    try:
        from keybridge.config import BackendConfig, ConfigValidationError

        config = BackendConfig(config_file=config_file)
    except ConfigValidationError as exc:
        _print_error(str(exc))
        if not args.validate_only:
            _emit({"Error": str(exc)})
        sys.exit(EXIT_FAILURE)

    # -- replace bootstrap logging with structured logging ---
    from keybridge.logging import configure_logging

    configure_logging(config.settings.logging)
    if args.debug:
        logging.getLogger("keybridge").setLevel(logging.DEBUG)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    if not args.command:
        _print_error("a command is required")
        _emit({"Error": "a command is required"})
        sys.exit(EXIT_FAILURE)

    # -- read request body ---
    try:
        body = _read_body(args)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        _emit({"Error": f"Cannot read request body: {exc}"})
        sys.exit(EXIT_FAILURE)

    # -- dispatch ---
    from keybridge.handlers.context import HandlerContext
    from keybridge.handlers.dispatcher import execute

    response, status = execute(args.command, body, HandlerContext(config.settings))
    _emit(response)
    sys.exit(status)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration to stderr."""
    s = config.settings
    print(f"configuration OK ({config!r})", file=sys.stderr)
    print(f"  keystore.default_location: {s.keystore.default_location}", file=sys.stderr)
    print(f"  keystore.staging_suffix:   {s.keystore.staging_suffix}", file=sys.stderr)
    print(f"  crypto.provider:           {s.crypto.provider}", file=sys.stderr)
    print(f"  truststore.paths:          {len(s.truststore.paths)}", file=sys.stderr)
