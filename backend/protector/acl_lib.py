"""Bucket and object ACL inspection, violation detection and reset."""
from __future__ import annotations

import json
import logging
from typing import Sequence

from botocore.exceptions import BotoCoreError, ClientError

from .clients import ControlPlane, RemoteFetchError, status_code
from .types import (
    STATUS_ABORTED,
    STATUS_COMPLIANT,
    STATUS_DRY_RUN,
    STATUS_FAILED,
    STATUS_REMEDIATED,
    AccessControlSnapshot,
    BucketAclChange,
    Grant,
    ObjectAclChange,
    ProtectionOutcome,
)

LOGGER = logging.getLogger(__name__)

PUBLIC_GROUP_MARKERS = ("AllUsers", "AuthenticatedUsers")
LOG_DELIVERY_MARKER = "LogDelivery"
PRIVATE_ACL = "private"
MANUAL_FOLLOWUP = "Manual followup recommended"


def fetch_bucket_acl(clients: ControlPlane, bucket: str, *, logger: logging.Logger = LOGGER) -> AccessControlSnapshot:
    """Return the bucket's current ACL; raises RemoteFetchError on failure."""
    logger.info("Describing the current ACL: s3://%s", bucket)
    response = clients.get_bucket_acl(bucket)
    snapshot = AccessControlSnapshot.from_response(response)
    logger.info("Current ACL for s3://%s: %s", bucket, json.dumps(snapshot.summary()))
    return snapshot


def fetch_object_acl(
    clients: ControlPlane,
    bucket: str,
    key: str,
    *,
    logger: logging.Logger = LOGGER,
) -> AccessControlSnapshot:
    """Return the object's current ACL; raises RemoteFetchError on failure."""
    logger.info("Describing the ACL: s3://%s/%s", bucket, key)
    return AccessControlSnapshot.from_response(clients.get_object_acl(bucket, key))


def grantee_uris(snapshot: AccessControlSnapshot, *, logger: logging.Logger = LOGGER) -> str:
    """Concatenate every grantee URI in the snapshot into one scan target."""
    uris = []
    for grant in snapshot.grants:
        if grant.uri:
            logger.info("Found Grant: %s", json.dumps(dict(grant.raw), default=str))
            uris.append(grant.uri)
    return "".join(uris)


def log_delivery_grants(snapshot: AccessControlSnapshot) -> list[Grant]:
    return [grant for grant in snapshot.grants if grant.uri and LOG_DELIVERY_MARKER in grant.uri]


def has_public_marker(uri_list: str, *, logger: logging.Logger = LOGGER) -> bool:
    """Substring scan for the AllUsers / AuthenticatedUsers group markers."""
    if any(marker in uri_list for marker in PUBLIC_GROUP_MARKERS):
        logger.info("Violation found. Grant ACL greater than Private")
        return True
    logger.info("ACL is correctly already private")
    return False


def bucket_acl_violates(snapshot: AccessControlSnapshot, *, logger: logging.Logger = LOGGER) -> bool:
    return has_public_marker(grantee_uris(snapshot, logger=logger), logger=logger)


def object_acl_is_private(snapshot: AccessControlSnapshot, *, logger: logging.Logger = LOGGER) -> bool:
    """An object ACL is private only with a single grant held by the owner."""
    if len(snapshot.grants) != 1:
        logger.info("Expected exactly one Grant, found %d", len(snapshot.grants))
        return False
    grantee_id = snapshot.grants[0].id
    if snapshot.owner_id is None or grantee_id != snapshot.owner_id:
        logger.info("owner:[%s], grantee[%s] do not match", snapshot.owner_id, grantee_id)
        return False
    return True


def remediate_bucket_acl(
    clients: ControlPlane,
    change: BucketAclChange,
    *,
    apply: bool,
    logger: logging.Logger = LOGGER,
) -> ProtectionOutcome:
    """Inspect the bucket ACL and reset it when a public group grant is present."""
    try:
        snapshot = fetch_bucket_acl(clients, change.bucket, logger=logger)
    except RemoteFetchError as exc:
        logger.error("Error was: {%s} %s", exc, MANUAL_FOLLOWUP)
        return ProtectionOutcome(
            event_name=change.event_name,
            status=STATUS_ABORTED,
            action="bucket-acl",
            error=str(exc),
            message="Unable to describe bucket ACL",
        )

    before = {"grants": snapshot.summary()}
    if not bucket_acl_violates(snapshot, logger=logger):
        return ProtectionOutcome(
            event_name=change.event_name,
            status=STATUS_COMPLIANT,
            action="bucket-acl",
            before=before,
            after=before,
            message="Bucket ACL has no public grants",
        )
    return reset_bucket_acl(clients, change, snapshot, apply=apply, logger=logger)


def reset_bucket_acl(
    clients: ControlPlane,
    change: BucketAclChange,
    snapshot: AccessControlSnapshot,
    *,
    apply: bool,
    logger: logging.Logger = LOGGER,
) -> ProtectionOutcome:
    """Write a private ACL, keeping any LogDelivery grants and the existing owner."""
    preserved = log_delivery_grants(snapshot)
    before = {"grants": snapshot.summary()}
    if preserved:
        after = {"grants": [grant.describe() for grant in preserved], "owner": snapshot.owner_id}
        request = {
            "AccessControlPolicy": {
                "Grants": [dict(grant.raw) for grant in preserved],
                "Owner": snapshot.owner(),
            }
        }
        success_message = "Reverted to only contain LogDelivery"
        logger.info("Resetting ACL to LogDelivery; preserving %s", json.dumps(after["grants"]))
    else:
        after = {"acl": PRIVATE_ACL}
        request = {"ACL": PRIVATE_ACL}
        success_message = "Bucket ACL has been changed to Private"
        logger.info("Resetting ACL to Private")

    if not apply:
        logger.info("Dry run: would call PutBucketAcl on s3://%s with %s", change.bucket, json.dumps(request))
        return _dry_run(change.event_name, "bucket-acl", before, after)

    logger.info("Attempting Automatic Resolution")
    try:
        response = clients.put_bucket_acl(change.bucket, **request)
    except (ClientError, BotoCoreError) as exc:
        logger.error("Unable to resolve violation automatically. Error was: %s", exc)
        return _failed(change.event_name, "bucket-acl", before, after, str(exc))

    logger.info("PutBucketAcl response: %s", json.dumps(response, default=str))
    code = status_code(response)
    if code != 200:
        logger.error("PutBucketAcl failed with status %s. %s", code, MANUAL_FOLLOWUP)
        return _failed(change.event_name, "bucket-acl", before, after, f"PutBucketAcl returned status {code}")
    logger.info(success_message)
    return ProtectionOutcome(
        event_name=change.event_name,
        status=STATUS_REMEDIATED,
        action="bucket-acl",
        changed=True,
        before=before,
        after=after,
        message=success_message,
    )


def remediate_object_acl(
    clients: ControlPlane,
    change: ObjectAclChange,
    *,
    apply: bool,
    logger: logging.Logger = LOGGER,
) -> ProtectionOutcome:
    """Reset the object ACL to private unless only the owner holds a grant."""
    try:
        snapshot = fetch_object_acl(clients, change.bucket, change.key, logger=logger)
    except RemoteFetchError as exc:
        logger.error("Error was: {%s} %s", exc, MANUAL_FOLLOWUP)
        return ProtectionOutcome(
            event_name=change.event_name,
            status=STATUS_ABORTED,
            action="object-acl",
            error=str(exc),
            message="Unable to describe object ACL",
        )

    before = {"grants": snapshot.summary()}
    if object_acl_is_private(snapshot, logger=logger):
        return ProtectionOutcome(
            event_name=change.event_name,
            status=STATUS_COMPLIANT,
            action="object-acl",
            before=before,
            after=before,
            message="Object ACL is private",
        )
    return make_object_private(clients, change, before=before, apply=apply, logger=logger)


def make_object_private(
    clients: ControlPlane,
    change: ObjectAclChange,
    *,
    before: dict[str, Sequence[str]] | None = None,
    apply: bool,
    logger: logging.Logger = LOGGER,
) -> ProtectionOutcome:
    after = {"acl": PRIVATE_ACL}
    if not apply:
        logger.info("Dry run: would make s3://%s/%s private", change.bucket, change.key)
        return _dry_run(change.event_name, "object-acl", before, after)

    logger.info("Making s3://%s/%s private", change.bucket, change.key)
    try:
        clients.put_object_acl(change.bucket, change.key, ACL=PRIVATE_ACL)
    except (ClientError, BotoCoreError) as exc:
        logger.error("PutObjectAcl failed for s3://%s/%s: %s. %s", change.bucket, change.key, exc, MANUAL_FOLLOWUP)
        return _failed(change.event_name, "object-acl", before, after, str(exc))
    return ProtectionOutcome(
        event_name=change.event_name,
        status=STATUS_REMEDIATED,
        action="object-acl",
        changed=True,
        before=before,
        after=after,
        message="Object ACL has been changed to Private",
    )


def _dry_run(event_name: str, action: str, before, after) -> ProtectionOutcome:  # type: ignore[no-untyped-def]
    return ProtectionOutcome(
        event_name=event_name,
        status=STATUS_DRY_RUN,
        action=action,
        before=before,
        after=after,
        message="Dry run - ACL unchanged",
    )


def _failed(event_name: str, action: str, before, after, error: str) -> ProtectionOutcome:  # type: ignore[no-untyped-def]
    return ProtectionOutcome(
        event_name=event_name,
        status=STATUS_FAILED,
        action=action,
        before=before,
        after=after,
        error=error,
        message="Unable to resolve violation automatically",
    )
