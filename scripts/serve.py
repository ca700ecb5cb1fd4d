#!/usr/bin/env python3
"""Run the streaming API under uvicorn.

Configuration comes from the usual environment and config file; this script
only decides where to listen.
"""

import argparse
import sys

import uvicorn

APP = "web.backend.main:app"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Serve the Riffstream API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --host 0.0.0.0 --port 8080
  %(prog)s --reload
        """,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    args = parser.parse_args(argv)

    uvicorn.run(APP, host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
