"""Command that starts a sample server or a sample client."""

from __future__ import annotations

import argparse
import threading
from collections.abc import Sequence

from aquarius.client import Client
from aquarius.log import init_logger
from aquarius.server import Server

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 10123
DEFAULT_POOL = 10
DEFAULT_NAME = "async tcp server"


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aquarius-echo", description="Sample server and client.")
    parser.add_argument("--log-dir", help="also write logs to files in this directory")
    modes = parser.add_subparsers(dest="mode", required=True)

    server = modes.add_parser("server", help="serve until interrupted")
    server.add_argument("--port", type=int, default=DEFAULT_PORT)
    server.add_argument("--pool", type=int, default=DEFAULT_POOL)
    server.add_argument("--name", default=DEFAULT_NAME)

    client = modes.add_parser("client", help="connect to a server")
    client.add_argument("--host", default=DEFAULT_HOST)
    client.add_argument("--port", default=str(DEFAULT_PORT))
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the sample server or client named on the command line."""
    args = _parser().parse_args(argv)
    if args.log_dir:
        init_logger(args.log_dir)

    if args.mode == "server":
        Server(args.port, args.pool, args.name).run()
        return 0

    client = Client(args.host, args.port)
    runner = threading.Thread(target=client.run)
    runner.start()
    print("Hello World!")
    client.stop()
    runner.join()
    return 0