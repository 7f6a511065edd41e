"""Typed value objects shared across protector modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, MutableMapping, Union

PUT_BUCKET_ACL = "PutBucketAcl"
PUT_OBJECT_ACL = "PutObjectAcl"
PUT_BUCKET_PUBLIC_ACCESS_BLOCK = "PutBucketPublicAccessBlock"
PUT_ACCOUNT_PUBLIC_ACCESS_BLOCK = "PutAccountPublicAccessBlock"

TRACKED_EVENTS = (
    PUT_BUCKET_ACL,
    PUT_OBJECT_ACL,
    PUT_BUCKET_PUBLIC_ACCESS_BLOCK,
    PUT_ACCOUNT_PUBLIC_ACCESS_BLOCK,
)

STATUS_IGNORED = "ignored"
STATUS_SHORT_CIRCUITED = "short-circuited"
STATUS_COMPLIANT = "compliant"
STATUS_REMEDIATED = "remediated"
STATUS_FAILED = "failed"
STATUS_ABORTED = "aborted"
STATUS_DRY_RUN = "dry-run"

ACCESS_BLOCK_FLAGS = (
    "BlockPublicAcls",
    "IgnorePublicAcls",
    "BlockPublicPolicy",
    "RestrictPublicBuckets",
)


@dataclass(frozen=True, slots=True)
class PublicAccessBlockConfiguration:
    """The four public access block flags; ``None`` means the flag was absent."""

    block_public_acls: bool | None = None
    ignore_public_acls: bool | None = None
    block_public_policy: bool | None = None
    restrict_public_buckets: bool | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> PublicAccessBlockConfiguration:
        if not isinstance(payload, Mapping):
            return cls()
        values = [_flag(payload.get(name)) for name in ACCESS_BLOCK_FLAGS]
        return cls(*values)

    @classmethod
    def locked(cls) -> PublicAccessBlockConfiguration:
        return cls(True, True, True, True)

    @property
    def enforced(self) -> bool:
        return all(value is True for value in self._values())

    def to_dict(self) -> dict[str, bool | None]:
        return dict(zip(ACCESS_BLOCK_FLAGS, self._values()))

    def _values(self) -> tuple[bool | None, ...]:
        return (
            self.block_public_acls,
            self.ignore_public_acls,
            self.block_public_policy,
            self.restrict_public_buckets,
        )


@dataclass(frozen=True, slots=True)
class Grant:
    """One (grantee, permission) entry from an S3 ACL."""

    permission: str | None
    grantee_type: str | None = None
    uri: str | None = None
    id: str | None = None
    display_name: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Grant:
        grantee = payload.get("Grantee") or {}
        if not isinstance(grantee, Mapping):
            grantee = {}
        return cls(
            permission=payload.get("Permission"),
            grantee_type=grantee.get("Type"),
            uri=grantee.get("URI") or grantee.get("Uri"),
            id=grantee.get("ID"),
            display_name=grantee.get("DisplayName"),
            raw=dict(payload),
        )

    def describe(self) -> str:
        return f"{self.uri or self.id or self.display_name or 'unknown'}:{self.permission}"


@dataclass(frozen=True, slots=True)
class AccessControlSnapshot:
    """Owner plus ordered grants as returned by GetBucketAcl / GetObjectAcl."""

    owner_id: str | None
    owner_display_name: str | None = None
    grants: tuple[Grant, ...] = ()

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> AccessControlSnapshot:
        owner = response.get("Owner") or {}
        grants = response.get("Grants") or []
        if isinstance(grants, Mapping):
            grants = [grants]
        return cls(
            owner_id=owner.get("ID"),
            owner_display_name=owner.get("DisplayName"),
            grants=tuple(Grant.from_mapping(grant) for grant in grants if isinstance(grant, Mapping)),
        )

    def owner(self) -> dict[str, str]:
        payload = {}
        if self.owner_display_name:
            payload["DisplayName"] = self.owner_display_name
        if self.owner_id:
            payload["ID"] = self.owner_id
        return payload

    def summary(self) -> list[str]:
        return [grant.describe() for grant in self.grants]


@dataclass(frozen=True, slots=True)
class BucketAclChange:
    bucket: str
    acl_directive: str | None = None
    event_name: str = PUT_BUCKET_ACL


@dataclass(frozen=True, slots=True)
class ObjectAclChange:
    bucket: str
    key: str
    acl_directive: str | None = None
    event_name: str = PUT_OBJECT_ACL


@dataclass(frozen=True, slots=True)
class BucketAccessBlockChange:
    bucket: str
    configuration: PublicAccessBlockConfiguration
    event_name: str = PUT_BUCKET_PUBLIC_ACCESS_BLOCK


@dataclass(frozen=True, slots=True)
class AccountAccessBlockChange:
    configuration: PublicAccessBlockConfiguration
    event_name: str = PUT_ACCOUNT_PUBLIC_ACCESS_BLOCK


ChangeEvent = Union[BucketAclChange, ObjectAclChange, BucketAccessBlockChange, AccountAccessBlockChange]
"""Parsed form of the four tracked CloudTrail mutations."""


@dataclass(slots=True)
class ProtectionOutcome:
    """Result of evaluating a single change event."""

    event_name: str
    status: str
    action: str | None = None
    changed: bool = False
    before: Mapping[str, Any] | None = None
    after: Mapping[str, Any] | None = None
    error: str | None = None
    message: str | None = None
    duration_ms: float | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


Event = MutableMapping[str, Any]
"""Alias for raw AWS event payloads used in Lambda handlers."""


def _flag(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)
