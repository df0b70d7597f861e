"""Command-line entry point: ingest one canvas epoch and exit."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pyplace.client import PlaceClient
from pyplace.config import PlaceConfig
from pyplace.exceptions import PlaceError

_logger = logging.getLogger("pyplace")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pyplace",
        description="Download every canvas tile of the current epoch and combine them into one PNG.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for tiles and composites (default: $PLACE_OUTPUT_DIR or ./images)",
    )
    parser.add_argument(
        "--recompose",
        type=int,
        metavar="EPOCH_ID",
        default=None,
        help="Rebuild the composite of a stored epoch instead of ingesting a new one",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Settings file read before the environment (default: ./.env, ignored if missing)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace, config: PlaceConfig) -> int:
    async with PlaceClient(config) as client:
        if args.recompose is not None:
            ref = await client.recompose(args.recompose)
            _logger.info("Recomposed epoch %s: %s", ref.epoch_id, ref.path)
            return 0
        result = await client.run_once()
    return 0 if result.succeeded else 1


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {"output_dir": args.output_dir} if args.output_dir is not None else {}
    try:
        config = PlaceConfig.from_env(dotenv_path=args.env_file, **overrides)
        return asyncio.run(_run(args, config))
    except PlaceError as exc:
        print(f"pyplace: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
