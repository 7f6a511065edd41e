"""Replay a recorded CloudTrail event fixture through the protector locally."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

import boto3

from .clients import AwsClients
from .handler import LOGGER as HANDLER_LOGGER, Protector, lambda_handler

DEFAULT_FIXTURE = "fixtures/putBucketAcl.json"

LOGGER = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    LOGGER.debug("Reading %s", args.fixture)
    event = json.loads(Path(args.fixture).read_text())
    session = boto3.Session(profile_name=args.profile, region_name=args.region)
    protector = Protector(AwsClients(session), apply=not args.dry_run)

    LOGGER.debug("handler()")
    lambda_handler(event, None, protector=protector)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay an S3 ACL change event against the protector")
    parser.add_argument("--fixture", default=DEFAULT_FIXTURE, help=f"Event JSON to replay (default: {DEFAULT_FIXTURE})")
    parser.add_argument("--dry-run", action="store_true", help="Log intended actions without applying")
    parser.add_argument("--profile", help="AWS profile name", default=None)
    parser.add_argument("--region", help="Default AWS region", default=None)
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    for name in ("backend.protector", HANDLER_LOGGER.name):
        logging.getLogger(name).setLevel(log_level)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
