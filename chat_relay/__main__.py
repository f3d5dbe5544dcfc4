"""本地运行入口：python -m chat_relay {rest,graphql,edge}。"""

import argparse
import os
from typing import List, Optional

import uvicorn

from chat_relay.api.graphql_app import create_edge_app, create_graphql_app
from chat_relay.api.rest_app import create_rest_app
from chat_relay.api.service import get_default_relay
from chat_relay.config.settings import settings


def build_app(surface: str):
    if surface == "rest":
        return create_rest_app(relay=get_default_relay())
    if surface == "graphql":
        return create_graphql_app(relay=get_default_relay())
    if surface == "edge":
        return create_edge_app(os.environ)
    raise ValueError(f"Unknown surface: {surface!r}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="chat_relay", description="DeepSeek chat relay server")
    parser.add_argument("surface", choices=["rest", "graphql", "edge"], help="which adapter to serve")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    args = parser.parse_args(argv)

    uvicorn.run(build_app(args.surface), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
