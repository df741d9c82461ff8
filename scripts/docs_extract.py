"""
CLI for running one extraction from the terminal.

Submits the job to a local coordinator, polls it like the web UI does and
prints the generated markdown.

Usage:
    python scripts/docs_extract.py https://docs.example.com "Quick installation guide"
    python scripts/docs_extract.py https://docs.example.com "API reference summary" --model claude-sonnet-4-20250514
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from docs_extractor.config.settings import Settings
from docs_extractor.ops import (
    JobCoordinator,
    JobStore,
    POLL_INTERVAL,
    REQUIRED_FIELDS,
    ValidationError,
    build_extract_operation,
    extract_once,
)
from docs_extractor.persist import ArtifactStore
from docs_extractor.telemetry import configure_logging


async def run(args, settings: Settings) -> int:
    artifacts = ArtifactStore(Path(settings.paths.generated_docs))
    coordinator = JobCoordinator(
        store=JobStore(),
        operation=build_extract_operation(settings, artifacts),
        required_fields=REQUIRED_FIELDS,
    )

    payload = {"docsUrl": args.url, "extractionType": args.type}
    if args.model:
        payload["model"] = args.model

    try:
        job = await extract_once(
            coordinator,
            payload,
            poll_interval=args.poll_interval,
            timeout=args.timeout,
        )
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except asyncio.TimeoutError as e:
        print(f"Error: {e}", file=sys.stderr)
        await coordinator.shutdown()
        return 1

    if job.status == "failed":
        print(f"Extraction failed: {job.error}", file=sys.stderr)
        return 1

    for block in job.result["response"]["content"]:
        if block.get("type") == "text":
            print(block["text"])

    if job.result.get("artifact"):
        print(f"\nSaved: {artifacts.root / job.result['artifact']}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract documentation from a URL into markdown"
    )

    parser.add_argument("url", type=str, help="Documentation page URL")
    parser.add_argument("type", type=str, help="What to extract, e.g. 'Main features overview'")
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model override",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=POLL_INTERVAL,
        help="Seconds between status checks",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds",
    )

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)

    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
