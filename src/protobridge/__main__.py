"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Run the gateway: ``python -m protobridge --port 8317``.
"""

from __future__ import annotations

import argparse
import logging

from .server import GatewayServerConfig, create_gateway_server
from .settings import BridgeSettings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat-completions gateway")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8317)
    parser.add_argument("--log-level", choices=("debug", "info", "warning"), default="info")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=args.log_level.upper())
    server = create_gateway_server(
        settings=BridgeSettings.from_env(),
        config=GatewayServerConfig(host=args.host, port=args.port),
    )
    server.run(log_level=args.log_level)


if __name__ == "__main__":
    main()
