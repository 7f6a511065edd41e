"""Shared fakes and fixtures for protector tests."""
from __future__ import annotations

from typing import Any, Mapping

import pytest
from botocore.exceptions import ClientError

from backend.protector.clients import RemoteFetchError

ACCOUNT_ID = "123456789012"
REGION = "us-east-1"
OWNER_ID = "75aa57f09aa0c8caeab4f8c24e99d10f8e7faeebf76c078efc7c6caea54ba06a"
ALL_USERS = "http://acs.amazonaws.com/groups/global/AllUsers"
AUTHENTICATED_USERS = "http://acs.amazonaws.com/groups/global/AuthenticatedUsers"
LOG_DELIVERY = "http://acs.amazonaws.com/groups/s3/LogDelivery"


def owner_grant(permission: str = "FULL_CONTROL", grantee_id: str = OWNER_ID) -> dict[str, Any]:
    return {
        "Grantee": {"Type": "CanonicalUser", "ID": grantee_id, "DisplayName": "owner"},
        "Permission": permission,
    }


def group_grant(uri: str, permission: str = "READ") -> dict[str, Any]:
    return {"Grantee": {"Type": "Group", "URI": uri}, "Permission": permission}


def acl_response(*grants: Mapping[str, Any], owner_id: str = OWNER_ID) -> dict[str, Any]:
    return {
        "Owner": {"DisplayName": "owner", "ID": owner_id},
        "Grants": [dict(grant) for grant in grants],
        "ResponseMetadata": {"HTTPStatusCode": 200},
    }


def change_event(event_name: str, **request_parameters: Any) -> dict[str, Any]:
    return {
        "account": ACCOUNT_ID,
        "region": REGION,
        "detail": {
            "eventName": event_name,
            "requestParameters": dict(request_parameters),
        },
    }


def client_error(operation: str, code: str = "AccessDenied") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, operation)


class FakeClients:
    """In-memory stand-in for AwsClients recording every call in order."""

    def __init__(
        self,
        *,
        bucket_acl: Mapping[str, Any] | None = None,
        object_acl: Mapping[str, Any] | None = None,
        account_id: str = ACCOUNT_ID,
        put_status: int = 200,
        fail: Mapping[str, Exception] | None = None,
    ):
        self.bucket_acl = bucket_acl or acl_response(owner_grant())
        self.object_acl = object_acl or acl_response(owner_grant())
        self.account_id = account_id
        self.put_status = put_status
        self.fail = dict(fail or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def writes(self) -> list[tuple[str, dict[str, Any]]]:
        return [call for call in self.calls if call[0].startswith("put_")]

    def get_bucket_acl(self, bucket: str):
        self._record("get_bucket_acl", Bucket=bucket)
        if "get_bucket_acl" in self.fail:
            raise RemoteFetchError("GetBucketAcl", f"s3://{bucket}", self.fail["get_bucket_acl"])
        return self.bucket_acl

    def get_object_acl(self, bucket: str, key: str):
        self._record("get_object_acl", Bucket=bucket, Key=key)
        if "get_object_acl" in self.fail:
            raise RemoteFetchError("GetObjectAcl", f"s3://{bucket}/{key}", self.fail["get_object_acl"])
        return self.object_acl

    def put_bucket_acl(self, bucket: str, **kwargs: Any):
        self._record("put_bucket_acl", Bucket=bucket, **kwargs)
        return self._put_response()

    def put_object_acl(self, bucket: str, key: str, **kwargs: Any):
        self._record("put_object_acl", Bucket=bucket, Key=key, **kwargs)
        return self._put_response()

    def put_bucket_public_access_block(self, bucket: str, configuration):
        self._record("put_bucket_public_access_block", Bucket=bucket, PublicAccessBlockConfiguration=dict(configuration))
        return self._put_response()

    def put_account_public_access_block(self, account_id: str, configuration):
        self._record(
            "put_account_public_access_block",
            AccountId=account_id,
            PublicAccessBlockConfiguration=dict(configuration),
        )
        return self._put_response()

    def get_caller_account(self) -> str:
        self._record("get_caller_account")
        return self.account_id

    def _record(self, name: str, **params: Any) -> None:
        self.calls.append((name, params))
        if name.startswith("put_") and name in self.fail:
            raise self.fail[name]
        if name == "get_caller_account" and name in self.fail:
            raise self.fail[name]

    def _put_response(self) -> dict[str, Any]:
        return {"ResponseMetadata": {"HTTPStatusCode": self.put_status}}


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
