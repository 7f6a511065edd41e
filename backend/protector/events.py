"""Classification of CloudTrail change events into remediation branches."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .types import (
    PUT_ACCOUNT_PUBLIC_ACCESS_BLOCK,
    PUT_BUCKET_ACL,
    PUT_BUCKET_PUBLIC_ACCESS_BLOCK,
    PUT_OBJECT_ACL,
    STATUS_IGNORED,
    STATUS_SHORT_CIRCUITED,
    TRACKED_EVENTS,
    AccountAccessBlockChange,
    BucketAccessBlockChange,
    BucketAclChange,
    ChangeEvent,
    Event,
    ObjectAclChange,
    PublicAccessBlockConfiguration,
)

LOGGER = logging.getLogger(__name__)

PRIVATE_ACL = "private"
DISPATCH = "dispatch"


@dataclass(frozen=True, slots=True)
class Classification:
    disposition: str
    event_name: str
    change: ChangeEvent | None = None
    reason: str | None = None

    @property
    def dispatched(self) -> bool:
        return self.disposition == DISPATCH


def classify(event: Event, *, logger: logging.Logger = LOGGER) -> Classification:
    """Decide whether an event is ignored, already handled, or needs a branch.

    A non-mapping ``event`` raises ``AttributeError``; only the fields inside
    ``detail`` are treated as optional.
    """
    detail = event.get("detail")
    if not detail:
        logger.info("Event has no detail; ignoring")
        return Classification(STATUS_IGNORED, "unknown", reason="missing detail")

    event_name = detail.get("eventName")
    if not event_name:
        logger.info("Event has no eventName; ignoring")
        return Classification(STATUS_IGNORED, "unknown", reason="missing eventName")
    if event_name not in TRACKED_EVENTS:
        logger.info("eventName %s is not tracked; ignoring", event_name)
        return Classification(STATUS_IGNORED, event_name, reason="untracked eventName")

    params = detail.get("requestParameters") or {}
    if not isinstance(params, Mapping):
        params = {}

    if requested_acl_is_private(params, logger=logger):
        return Classification(STATUS_SHORT_CIRCUITED, event_name, reason="ACL already private")
    if upstream_failed(detail, logger=logger):
        return Classification(STATUS_SHORT_CIRCUITED, event_name, reason="upstream call failed")

    change = parse_change(event_name, params)
    if change is None:
        logger.info("%s event is missing resource identifiers; ignoring", event_name)
        return Classification(STATUS_IGNORED, event_name, reason="missing resource identifiers")
    return Classification(DISPATCH, event_name, change=change)


def requested_acl_is_private(params: Mapping[str, Any], *, logger: logging.Logger = LOGGER) -> bool:
    directive = acl_directive(params)
    if directive is None:
        return False
    logger.info("ACL is currently %s", directive)
    if directive == PRIVATE_ACL:
        logger.info("ACL is already private. Ending.")
        return True
    return False


def upstream_failed(detail: Mapping[str, Any], *, logger: logging.Logger = LOGGER) -> bool:
    # The remediation's own write emits a matching event; a failed call must not re-trigger it.
    if detail.get("errorCode") or detail.get("errorMessage"):
        logger.info(
            "Previous API call resulted in an error (%s: %s). Ending",
            detail.get("errorCode"),
            detail.get("errorMessage"),
        )
        return True
    return False


def acl_directive(params: Mapping[str, Any]) -> str | None:
    value = params.get("x-amz-acl")
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or value == "":
        return None
    return str(value)


def parse_change(event_name: str, params: Mapping[str, Any]) -> ChangeEvent | None:
    bucket = params.get("bucketName")
    configuration = PublicAccessBlockConfiguration.from_mapping(params.get("PublicAccessBlockConfiguration"))

    if event_name == PUT_ACCOUNT_PUBLIC_ACCESS_BLOCK:
        return AccountAccessBlockChange(configuration=configuration)
    if not bucket:
        return None
    if event_name == PUT_BUCKET_ACL:
        return BucketAclChange(bucket=str(bucket), acl_directive=acl_directive(params))
    if event_name == PUT_OBJECT_ACL:
        key = params.get("key")
        if not key:
            return None
        return ObjectAclChange(bucket=str(bucket), key=str(key), acl_directive=acl_directive(params))
    if event_name == PUT_BUCKET_PUBLIC_ACCESS_BLOCK:
        return BucketAccessBlockChange(bucket=str(bucket), configuration=configuration)
    return None


__all__ = [
    "Classification",
    "DISPATCH",
    "PRIVATE_ACL",
    "acl_directive",
    "classify",
    "parse_change",
    "requested_acl_is_private",
    "upstream_failed",
]
