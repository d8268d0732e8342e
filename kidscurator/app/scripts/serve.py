from __future__ import annotations

import argparse
import os

import uvicorn

DEFAULT_PORT = 3002


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the kids video curation API.")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind.")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", DEFAULT_PORT)),
        help="Port to bind (defaults to $PORT or 3002).",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart on code changes (development only).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    uvicorn.run(
        "kidscurator.app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
