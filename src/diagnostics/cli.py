import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

import credentials

from .config import Settings
from .errors import DecryptionError, DiagnosticsError, ValidationError
from .logsetup import configure_logging
from .report import Reporter
from .targets import InvalidTarget, require_domain, require_host
from .toolbox import ToolboxService

"""
Command-line interface for the trust diagnostics toolbox.

  dnssec  - DNSSEC posture for one or more domains
  ssl     - TLS certificate report for one or more hosts
  encrypt - seal stdin with a password (JSON payload on stdout)
  decrypt - open a JSON payload from stdin (plaintext on stdout)
"""

DEFAULT_PASSWORD_ENV = "TRUST_DIAG_PASSWORD"


# Parse the command-line arguments
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="trust-diag", description="Network trust & diagnostics toolbox")
    p.add_argument("--log-level", default=None, help="Override TRUST_DIAG_LOG_LEVEL")
    sub = p.add_subparsers(dest="command", required=True)

    d = sub.add_parser("dnssec", help="Inspect DNSSEC records")
    d.add_argument("zones", nargs="+", help="Domain names (e.g., example.com)")
    d.add_argument("--nameserver", default=None, help="Resolver IP to query (default: system resolver)")
    _add_output_flags(d)

    s = sub.add_parser("ssl", help="Inspect TLS certificates")
    s.add_argument("hosts", nargs="+", help="Host names or IPs")
    s.add_argument("--port", type=int, default=None, help="Port (default 443)")
    _add_output_flags(s)

    for name, text in (("encrypt", "Encrypt stdin"), ("decrypt", "Decrypt a JSON payload from stdin")):
        c = sub.add_parser(name, help=text)
        c.add_argument(
            "--password-env",
            default=DEFAULT_PASSWORD_ENV,
            help=f"Environment variable holding the password (default {DEFAULT_PASSWORD_ENV})",
        )

    return p.parse_args(argv)


def _add_output_flags(p: argparse.ArgumentParser) -> None:
    g = p.add_mutually_exclusive_group()
    g.add_argument("--json", dest="as_json", action="store_true", help="Output JSON")
    g.add_argument("--csv", dest="as_csv", action="store_true", help="Output CSV")


def validate_targets(raw: List[str], require=require_domain) -> List[str]:
    """
    Validate + normalize all targets up front so errors are reported together
    and no partial work is done.

    Raises:
        SystemExit(2): if any target is invalid.
    """
    normalized: List[str] = []
    errors: List[str] = []

    for t in raw:
        try:
            normalized.append(require(t))
        except InvalidTarget as e:
            errors.append(f"{t}: {e}")

    if errors:
        for e in errors:
            print(f"Invalid input: {e}")
        raise SystemExit(2)

    return normalized


def _emit(results: List[Any], frame, args: argparse.Namespace) -> None:
    if args.as_json:
        out: Dict[str, Any] = {"results": [r.to_dict() for r in results]}
        print(json.dumps(out, indent=2))
    elif args.as_csv:
        sys.stdout.write(frame.to_csv(index=False))
    elif frame.empty:
        print("No results.")
    else:
        print(frame.to_string(index=False))


def _password(args: argparse.Namespace) -> str:
    password = os.environ.get(args.password_env)
    if not password:
        print(f"Set the password in ${args.password_env}", file=sys.stderr)
        raise SystemExit(2)
    return password


def run_encrypt(args: argparse.Namespace) -> int:
    payload = credentials.EncryptedPayload.seal(sys.stdin.buffer.read(), _password(args))
    print(json.dumps(payload.to_dict()))
    return 0


def run_decrypt(args: argparse.Namespace) -> int:
    password = _password(args)
    try:
        payload = credentials.EncryptedPayload.from_dict(json.loads(sys.stdin.read()))
        plaintext = payload.open(password)
    except (DecryptionError, ValueError):
        # same message whatever went wrong
        print(DecryptionError(), file=sys.stderr)
        return 1
    sys.stdout.buffer.write(plaintext)
    sys.stdout.flush()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entrypoint.

    Returns:
        Process exit code (0 = success).
    """
    args = parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValidationError as e:
        print(f"Invalid configuration: {e}")
        return 2
    configure_logging(args.log_level or settings.log_level)

    if args.command == "encrypt":
        return run_encrypt(args)
    if args.command == "decrypt":
        return run_decrypt(args)

    toolbox = ToolboxService(settings=settings)
    try:
        if args.command == "dnssec":
            zones = validate_targets(args.zones)
            results = asyncio.run(toolbox.inspect_many(zones, "dnssec", nameserver=args.nameserver))
            frame = Reporter.dnssec_frame(results)
        else:
            hosts = validate_targets(args.hosts, require=require_host)
            results = asyncio.run(toolbox.inspect_many(hosts, "ssl", port=args.port))
            frame = Reporter.ssl_frame(results)
    except DiagnosticsError as e:
        print(f"Error: {e}")
        return 2 if isinstance(e, ValidationError) else 1

    _emit(results, frame, args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
