"""Public Access Block enforcement at bucket and account scope."""
from __future__ import annotations

import logging

import pytest

boto3 = pytest.importorskip("boto3")
pytest.importorskip("botocore")
from botocore.stub import Stubber

pytest.importorskip("moto")
from moto import mock_aws

from backend.protector import access_block_lib
from backend.protector.clients import AwsClients
from backend.protector.types import (
    AccountAccessBlockChange,
    BucketAccessBlockChange,
    PublicAccessBlockConfiguration,
)
from conftest import ACCOUNT_ID, REGION, FakeClients, client_error

LOCKED = dict(access_block_lib.DESIRED_PUBLIC_ACCESS_BLOCK)


@pytest.mark.parametrize(
    "payload",
    [
        {"BlockPublicAcls": False, "IgnorePublicAcls": True, "BlockPublicPolicy": True, "RestrictPublicBuckets": True},
        {"BlockPublicAcls": True, "IgnorePublicAcls": True, "BlockPublicPolicy": True},
        {},
        None,
    ],
)
def test_relaxed_or_partial_configuration_is_a_violation(payload):
    config = PublicAccessBlockConfiguration.from_mapping(payload)
    assert access_block_lib.access_block_violates(config) is True


def test_fully_enforced_configuration_is_compliant():
    assert access_block_lib.access_block_violates(PublicAccessBlockConfiguration.from_mapping(LOCKED)) is False


def test_string_flags_from_cloudtrail_are_understood():
    config = PublicAccessBlockConfiguration.from_mapping({name: "true" for name in LOCKED})
    assert config.enforced is True


def test_bucket_scope_overwrites_all_flags():
    clients = FakeClients()
    change = BucketAccessBlockChange(
        bucket="b",
        configuration=PublicAccessBlockConfiguration(False, True, True, True),
    )

    outcome = access_block_lib.enforce_bucket_access_block(clients, change, apply=True)

    assert outcome.status == "remediated"
    assert outcome.after == {"settings": LOCKED}
    assert clients.calls == [
        ("put_bucket_public_access_block", {"Bucket": "b", "PublicAccessBlockConfiguration": LOCKED}),
    ]


def test_bucket_scope_compliant_issues_no_write():
    clients = FakeClients()
    change = BucketAccessBlockChange(bucket="b", configuration=PublicAccessBlockConfiguration.locked())
    assert access_block_lib.enforce_bucket_access_block(clients, change, apply=True).status == "compliant"
    assert clients.calls == []


def test_account_scope_looks_up_identity_before_write():
    clients = FakeClients(account_id="210987654321")
    change = AccountAccessBlockChange(configuration=PublicAccessBlockConfiguration(True, True, False, None))

    outcome = access_block_lib.enforce_account_access_block(clients, change, apply=True)

    assert outcome.status == "remediated"
    assert clients.calls == [
        ("get_caller_account", {}),
        (
            "put_account_public_access_block",
            {"AccountId": "210987654321", "PublicAccessBlockConfiguration": LOCKED},
        ),
    ]


def test_account_scope_compliant_skips_identity_lookup():
    clients = FakeClients()
    change = AccountAccessBlockChange(configuration=PublicAccessBlockConfiguration.locked())
    assert access_block_lib.enforce_account_access_block(clients, change, apply=True).status == "compliant"
    assert clients.calls == []


def test_write_failures_are_logged_not_raised():
    clients = FakeClients(fail={"put_bucket_public_access_block": client_error("PutPublicAccessBlock")})
    change = BucketAccessBlockChange(bucket="b", configuration=PublicAccessBlockConfiguration())
    outcome = access_block_lib.enforce_bucket_access_block(clients, change, apply=True)
    assert outcome.status == "failed"
    assert outcome.changed is False

    no_identity = FakeClients(fail={"get_caller_account": client_error("GetCallerIdentity")})
    account = AccountAccessBlockChange(configuration=PublicAccessBlockConfiguration())
    outcome = access_block_lib.enforce_account_access_block(no_identity, account, apply=True)
    assert outcome.status == "failed"
    assert no_identity.writes == []


def test_dry_run_account_scope_resolves_identity_but_skips_write():
    clients = FakeClients()
    change = AccountAccessBlockChange(configuration=PublicAccessBlockConfiguration())
    outcome = access_block_lib.enforce_account_access_block(clients, change, apply=False)
    assert outcome.status == "dry-run"
    assert clients.writes == []


def test_stubbed_account_scope_uses_sts_account():
    sts = boto3.client("sts", region_name=REGION)
    control = boto3.client("s3control", region_name=REGION)
    with Stubber(sts) as sts_stubber, Stubber(control) as control_stubber:
        sts_stubber.add_response(
            "get_caller_identity",
            {"UserId": "AIDAEXAMPLE", "Account": ACCOUNT_ID, "Arn": f"arn:aws:iam::{ACCOUNT_ID}:user/test"},
            {},
        )
        control_stubber.add_response(
            "put_public_access_block",
            {},
            {"AccountId": ACCOUNT_ID, "PublicAccessBlockConfiguration": LOCKED},
        )
        change = AccountAccessBlockChange(configuration=PublicAccessBlockConfiguration(True, True, True, False))
        outcome = access_block_lib.enforce_account_access_block(
            AwsClients(sts=sts, s3control=control), change, apply=True
        )
        sts_stubber.assert_no_pending_responses()
        control_stubber.assert_no_pending_responses()

    assert outcome.status == "remediated"


@mock_aws
def test_bucket_access_block_is_restored():
    s3 = boto3.client("s3", region_name=REGION)
    s3.create_bucket(Bucket="pba-bucket")
    s3.put_public_access_block(
        Bucket="pba-bucket",
        PublicAccessBlockConfiguration={name: False for name in LOCKED},
    )
    change = BucketAccessBlockChange(
        bucket="pba-bucket",
        configuration=PublicAccessBlockConfiguration.from_mapping({name: False for name in LOCKED}),
    )

    outcome = access_block_lib.enforce_bucket_access_block(AwsClients(s3=s3), change, apply=True)

    assert outcome.status == "remediated"
    applied = s3.get_public_access_block(Bucket="pba-bucket")["PublicAccessBlockConfiguration"]
    assert applied == LOCKED


def test_compliant_outcome_is_logged_on_injected_logger(caplog):
    logger = logging.getLogger("tests.access_block")
    change = AccountAccessBlockChange(configuration=PublicAccessBlockConfiguration.locked())
    with caplog.at_level(logging.INFO, logger="tests.access_block"):
        access_block_lib.enforce_account_access_block(FakeClients(), change, apply=True, logger=logger)

    messages = [r.getMessage() for r in caplog.records if r.name == "tests.access_block"]
    assert "account-public-access-block already enforced" in messages
    assert not [r for r in caplog.records if r.name == access_block_lib.LOGGER.name]
