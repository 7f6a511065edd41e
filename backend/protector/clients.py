"""Thin boto3 facade over the S3, S3 Control and STS calls the protector makes."""
from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError


@runtime_checkable
class ControlPlane(Protocol):
    """The S3/S3 Control/STS calls the remediation branches depend on."""

    def get_bucket_acl(self, bucket: str) -> Mapping[str, Any]: ...

    def get_object_acl(self, bucket: str, key: str) -> Mapping[str, Any]: ...

    def put_bucket_acl(self, bucket: str, **kwargs: Any) -> Mapping[str, Any]: ...

    def put_object_acl(self, bucket: str, key: str, **kwargs: Any) -> Mapping[str, Any]: ...

    def put_bucket_public_access_block(self, bucket: str, configuration: Mapping[str, bool]) -> Mapping[str, Any]: ...

    def put_account_public_access_block(self, account_id: str, configuration: Mapping[str, bool]) -> Mapping[str, Any]: ...

    def get_caller_account(self) -> str: ...


class RemoteFetchError(RuntimeError):
    """Raised when current ACL state cannot be read from S3."""

    def __init__(self, operation: str, resource: str, cause: Exception):
        super().__init__(f"{operation} failed for {resource}: {cause}")
        self.operation = operation
        self.resource = resource
        self.cause = cause


class AwsClients:
    """Wrapper around boto3 clients so tests can inject stubs or fakes."""

    def __init__(self, session=None, *, s3=None, s3control=None, sts=None):  # type: ignore[no-untyped-def]
        self._session = session
        self._s3 = s3
        self._s3control = s3control
        self._sts = sts

    @property
    def s3(self):  # type: ignore[no-untyped-def]
        if self._s3 is None:
            self._s3 = self._resolve_session().client("s3")
        return self._s3

    @property
    def s3control(self):  # type: ignore[no-untyped-def]
        if self._s3control is None:
            self._s3control = self._resolve_session().client("s3control")
        return self._s3control

    @property
    def sts(self):  # type: ignore[no-untyped-def]
        if self._sts is None:
            self._sts = self._resolve_session().client("sts")
        return self._sts

    def get_bucket_acl(self, bucket: str) -> Mapping[str, Any]:
        try:
            return self.s3.get_bucket_acl(Bucket=bucket)
        except (ClientError, BotoCoreError) as exc:
            raise RemoteFetchError("GetBucketAcl", f"s3://{bucket}", exc) from exc

    def get_object_acl(self, bucket: str, key: str) -> Mapping[str, Any]:
        try:
            return self.s3.get_object_acl(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise RemoteFetchError("GetObjectAcl", f"s3://{bucket}/{key}", exc) from exc

    def put_bucket_acl(self, bucket: str, **kwargs: Any) -> Mapping[str, Any]:
        return self.s3.put_bucket_acl(Bucket=bucket, **kwargs)

    def put_object_acl(self, bucket: str, key: str, **kwargs: Any) -> Mapping[str, Any]:
        return self.s3.put_object_acl(Bucket=bucket, Key=key, **kwargs)

    def put_bucket_public_access_block(self, bucket: str, configuration: Mapping[str, bool]) -> Mapping[str, Any]:
        return self.s3.put_public_access_block(
            Bucket=bucket,
            PublicAccessBlockConfiguration=dict(configuration),
        )

    def put_account_public_access_block(self, account_id: str, configuration: Mapping[str, bool]) -> Mapping[str, Any]:
        return self.s3control.put_public_access_block(
            AccountId=account_id,
            PublicAccessBlockConfiguration=dict(configuration),
        )

    def get_caller_account(self) -> str:
        response = self.sts.get_caller_identity()
        return response["Account"]

    def _resolve_session(self):  # type: ignore[no-untyped-def]
        if self._session is None:
            self._session = boto3.Session()
        return self._session


def status_code(response: Mapping[str, Any] | None) -> int | None:
    """Return the HTTP status recorded in a boto3 response, if any."""
    if not response:
        return None
    metadata = response.get("ResponseMetadata") or {}
    return metadata.get("HTTPStatusCode")


__all__ = ["AwsClients", "ControlPlane", "RemoteFetchError", "status_code"]
