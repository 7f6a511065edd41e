"""AWS Lambda entrypoint that reverts public S3 ACL and Public Access Block changes."""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Callable

from . import access_block_lib, acl_lib, events, metrics
from .clients import AwsClients, ControlPlane
from .types import (
    AccountAccessBlockChange,
    BucketAccessBlockChange,
    BucketAclChange,
    ChangeEvent,
    Event,
    ObjectAclChange,
    ProtectionOutcome,
)

LOGGER = logging.getLogger(__name__)
LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
if not isinstance(LOG_LEVEL, int):
    LOG_LEVEL = logging.INFO
LOGGER.setLevel(LOG_LEVEL)

DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

BANNER = "=" * 86


class Protector:
    """Classifies one change event and runs the matching remediation branch."""

    def __init__(self, clients: ControlPlane, *, logger: logging.Logger | None = None, apply: bool = True):
        self.clients = clients
        self.logger = logger or LOGGER
        self.apply = apply
        self._branches: dict[type, Callable[..., ProtectionOutcome]] = {
            BucketAclChange: acl_lib.remediate_bucket_acl,
            ObjectAclChange: acl_lib.remediate_object_acl,
            BucketAccessBlockChange: access_block_lib.enforce_bucket_access_block,
            AccountAccessBlockChange: access_block_lib.enforce_account_access_block,
        }

    def handle(self, event: Event) -> bool:
        self.evaluate(event)
        return True

    def evaluate(self, event: Event) -> ProtectionOutcome:
        start = time.perf_counter()
        classification = events.classify(event, logger=self.logger)
        if classification.dispatched:
            self.logger.info(BANNER)
            self.logger.info("eventName: %s", classification.event_name)
            outcome = self._remediate(classification.change)
        else:
            outcome = ProtectionOutcome(
                event_name=classification.event_name,
                status=classification.disposition,
                message=classification.reason,
            )
        outcome.duration_ms = (time.perf_counter() - start) * 1000
        metrics.put_metric(outcome, logger=self.logger)
        return outcome

    def _remediate(self, change: ChangeEvent | None) -> ProtectionOutcome:
        branch = self._branches[type(change)]
        return branch(self.clients, change, apply=self.apply, logger=self.logger)


_DEFAULT_PROTECTOR: Protector | None = None


def default_protector() -> Protector:
    """Lazily build the protector shared by warm Lambda invocations."""
    global _DEFAULT_PROTECTOR
    if _DEFAULT_PROTECTOR is None:
        _DEFAULT_PROTECTOR = Protector(AwsClients(), logger=LOGGER, apply=not DRY_RUN)
    return _DEFAULT_PROTECTOR


def lambda_handler(event: Event, context: Any = None, *, protector: Protector | None = None) -> bool:
    """AWS Lambda handler compatible with EventBridge CloudTrail invocations."""
    LOGGER.debug("Received event: %s", json.dumps(event, default=str))
    return (protector or default_protector()).handle(event)
