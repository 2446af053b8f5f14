"""Command line entry point: ``python -m devloop [serve|hash-key]``."""
import argparse
import getpass
import sys

import uvicorn

from devloop.core.config import get_settings
from devloop.core.crypto import hash_api_key
from devloop.core.logging_setup import configure_logging


def _serve(args: argparse.Namespace) -> int:
    settings = get_settings()
    host = args.host or settings.server.host
    port = args.port or settings.server.port
    configure_logging(settings.server.log_level)
    uvicorn.run(
        "devloop.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=settings.server.reload,
        log_level=settings.server.log_level.lower(),
    )
    return 0


def _hash_key(args: argparse.Namespace) -> int:
    key = args.key or getpass.getpass("API key: ")
    if not key:
        print("an API key is required", file=sys.stderr)
        return 1
    print(hash_api_key(key))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devloop", description="Developer Loop script service")
    subcommands = parser.add_subparsers(dest="command")

    serve = subcommands.add_parser("serve", help="run the HTTP service (default)")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=_serve)

    hash_key = subcommands.add_parser("hash-key", help="print a bcrypt hash for DEVLOOP_SECURITY__API_KEY_HASH")
    hash_key.add_argument("key", nargs="?", default=None)
    hash_key.set_defaults(handler=_hash_key)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, "handler", None) is None:
        args = parser.parse_args(["serve", *(argv or [])])
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
