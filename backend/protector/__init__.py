"""Protector package reverting public S3 ACL and Public Access Block changes."""

__all__ = [
    "handler",
    "events",
    "acl_lib",
    "access_block_lib",
    "clients",
    "metrics",
    "types",
    "cli",
]
