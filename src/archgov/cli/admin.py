"""CLI commands: server."""

from __future__ import annotations

import argparse


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from archgov.api import create_app
    from archgov.observability import setup_logging

    setup_logging()
    uvicorn.run(create_app(db_path=args.db), host=args.host, port=args.port)
    return 0
