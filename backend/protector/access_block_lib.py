"""Public Access Block enforcement at bucket and account scope."""
from __future__ import annotations

import json
import logging
from typing import Mapping

from botocore.exceptions import BotoCoreError, ClientError

from .clients import ControlPlane
from .types import (
    STATUS_COMPLIANT,
    STATUS_DRY_RUN,
    STATUS_FAILED,
    STATUS_REMEDIATED,
    AccountAccessBlockChange,
    BucketAccessBlockChange,
    ProtectionOutcome,
    PublicAccessBlockConfiguration,
)

LOGGER = logging.getLogger(__name__)


DESIRED_PUBLIC_ACCESS_BLOCK: Mapping[str, bool] = {
    "BlockPublicAcls": True,
    "IgnorePublicAcls": True,
    "BlockPublicPolicy": True,
    "RestrictPublicBuckets": True,
}


def access_block_violates(
    configuration: PublicAccessBlockConfiguration,
    *,
    logger: logging.Logger = LOGGER,
) -> bool:
    """True when any of the four flags is false or missing."""
    logger.info("PublicAccessBlockConfiguration: %s", json.dumps(configuration.to_dict()))
    return not configuration.enforced


def enforce_bucket_access_block(
    clients: ControlPlane,
    change: BucketAccessBlockChange,
    *,
    apply: bool,
    logger: logging.Logger = LOGGER,
) -> ProtectionOutcome:
    """Overwrite the bucket's Public Access Block when the event relaxed it."""
    before = {"settings": change.configuration.to_dict()}
    if not access_block_violates(change.configuration, logger=logger):
        return _compliant(change.event_name, "bucket-public-access-block", before, logger=logger)

    logger.info("s3://%s now not private, fixing...", change.bucket)
    if not apply:
        logger.info("Dry run: would apply Public Access Block %s to s3://%s", DESIRED_PUBLIC_ACCESS_BLOCK, change.bucket)
        return _dry_run(change.event_name, "bucket-public-access-block", before)
    try:
        response = clients.put_bucket_public_access_block(change.bucket, DESIRED_PUBLIC_ACCESS_BLOCK)
    except (ClientError, BotoCoreError) as exc:
        logger.error("Failed to apply bucket PBA for %s: %s", change.bucket, exc)
        return _failed(change.event_name, "bucket-public-access-block", before, str(exc))
    logger.info("PutPublicAccessBlock response: %s", json.dumps(response, default=str))
    return _remediated(change.event_name, "bucket-public-access-block", before)


def enforce_account_access_block(
    clients: ControlPlane,
    change: AccountAccessBlockChange,
    *,
    apply: bool,
    logger: logging.Logger = LOGGER,
) -> ProtectionOutcome:
    """Resolve the caller's account, then overwrite its Public Access Block."""
    before = {"settings": change.configuration.to_dict()}
    if not access_block_violates(change.configuration, logger=logger):
        return _compliant(change.event_name, "account-public-access-block", before, logger=logger)

    try:
        account_id = clients.get_caller_account()
    except (ClientError, BotoCoreError, KeyError) as exc:
        logger.error("Unable to resolve caller account: %s", exc)
        return _failed(change.event_name, "account-public-access-block", before, str(exc))
    logger.info("Account %s now not private, fixing...", account_id)

    if not apply:
        logger.info("Dry run: would apply Public Access Block %s to account %s", DESIRED_PUBLIC_ACCESS_BLOCK, account_id)
        return _dry_run(change.event_name, "account-public-access-block", before)
    try:
        response = clients.put_account_public_access_block(account_id, DESIRED_PUBLIC_ACCESS_BLOCK)
    except (ClientError, BotoCoreError) as exc:
        logger.error("Account-level PBA enforcement failed for %s: %s", account_id, exc)
        return _failed(change.event_name, "account-public-access-block", before, str(exc))
    logger.info("PutPublicAccessBlock response: %s", json.dumps(response, default=str))
    return _remediated(change.event_name, "account-public-access-block", before)


def _compliant(
    event_name: str,
    action: str,
    before: Mapping[str, object],
    *,
    logger: logging.Logger = LOGGER,
) -> ProtectionOutcome:
    logger.info("%s already enforced", action)
    return ProtectionOutcome(
        event_name=event_name,
        status=STATUS_COMPLIANT,
        action=action,
        before=before,
        after=before,
        message="Public Access Block already enforced",
    )


def _remediated(event_name: str, action: str, before: Mapping[str, object]) -> ProtectionOutcome:
    return ProtectionOutcome(
        event_name=event_name,
        status=STATUS_REMEDIATED,
        action=action,
        changed=True,
        before=before,
        after={"settings": dict(DESIRED_PUBLIC_ACCESS_BLOCK)},
        message="Public Access Block enforced",
    )


def _dry_run(event_name: str, action: str, before: Mapping[str, object]) -> ProtectionOutcome:
    return ProtectionOutcome(
        event_name=event_name,
        status=STATUS_DRY_RUN,
        action=action,
        before=before,
        after={"settings": dict(DESIRED_PUBLIC_ACCESS_BLOCK)},
        message="Dry run - PBA unchanged",
    )


def _failed(event_name: str, action: str, before: Mapping[str, object], error: str) -> ProtectionOutcome:
    return ProtectionOutcome(
        event_name=event_name,
        status=STATUS_FAILED,
        action=action,
        before=before,
        error=error,
        message="Failed to enforce Public Access Block",
    )
