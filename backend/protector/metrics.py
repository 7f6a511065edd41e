"""Utility helpers for emitting AWS EMF metrics through the log stream."""
from __future__ import annotations

import json
import logging
import time

from .types import ProtectionOutcome

LOGGER = logging.getLogger(__name__)

NAMESPACE = "S3AclProtector"
DIMENSIONS = [["EventName", "Action", "Result"]]


def put_metric(outcome: ProtectionOutcome, *, logger: logging.Logger = LOGGER) -> dict[str, object]:
    """Emit an Embedded Metric Format (EMF) log entry for one evaluated event."""
    metric = {
        "_aws": {
            "Timestamp": int(time.time() * 1000),
            "CloudWatchMetrics": [
                {
                    "Namespace": NAMESPACE,
                    "Dimensions": DIMENSIONS,
                    "Metrics": [
                        {"Name": "Latency", "Unit": "Milliseconds"},
                        {"Name": "Remediated", "Unit": "Count"},
                    ],
                }
            ],
        },
        "EventName": outcome.event_name,
        "Action": outcome.action or "none",
        "Result": outcome.status,
        "Latency": outcome.duration_ms,
        "Remediated": int(outcome.changed),
        "Error": outcome.error,
    }
    payload = {k: v for k, v in metric.items() if v is not None}
    logger.info("EMF %s", json.dumps(payload))
    return payload
