"""
CLI for launching the FastAPI server.

Usage:
    docs-serve
    docs-serve --port 8080 --host 127.0.0.1
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from docs_extractor.config.settings import Settings
from docs_extractor.telemetry import configure_logging


def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description="Launch the Docs Extractor API server"
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.server.host,
        help="Host to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.server.port,
        help="Port to bind to",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    configure_logging(settings.log_level, settings.log_json)
    print(f"Starting Docs Extractor API on http://{args.host}:{args.port}")
    print(f"API documentation available at: http://localhost:{args.port}/docs")

    uvicorn.run(
        "docs_extractor.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
