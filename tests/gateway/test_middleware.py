"""Middleware and logging setup

1. trace middleware path parsing
2. request id resolution
3. Decimal rendering and quiet third-party loggers
"""

import logging
from decimal import Decimal

import pytest
from fieldops.gateway.middleware.logging_config import setup_logging, stringify_decimals
from fieldops.gateway.middleware.logging_mw import resolve_request_id
from fieldops.gateway.middleware.trace_mw import extract_task_id

TASK_ID = "01JABCDEFGHJKMNPQRSTVWXYZ0"


@pytest.mark.parametrize(
    "path,expected",
    [
        (f"/api/tasks/{TASK_ID}", TASK_ID),
        (f"/api/tasks/{TASK_ID}/checkout", TASK_ID),
        (f"/api/tasks/{TASK_ID}/events", TASK_ID),
        ("/api/tasks", None),
        ("/api/tasks/short", None),
        ("/health", None),
    ],
)
def test_extract_task_id(path, expected):
    assert extract_task_id(path) == expected


@pytest.mark.parametrize("incoming", ["abc-123", "01JABCDEFGHJKMNPQRSTVWXYZ0", "a.b_c"])
def test_well_formed_request_id_kept(incoming):
    assert resolve_request_id(incoming) == incoming


@pytest.mark.parametrize("incoming", [None, "", "has space", "x" * 65, "new\nline"])
def test_malformed_request_id_replaced(incoming):
    request_id = resolve_request_id(incoming)
    assert request_id != incoming
    assert len(request_id) == 26


def test_decimals_rendered_as_strings():
    event_dict = {"event": "task_checked_out", "amount": Decimal("150000.0000"), "warnings": 1}
    rendered = stringify_decimals(None, "info", event_dict)
    assert rendered["amount"] == "150000.0000"
    assert rendered["warnings"] == 1


def test_setup_logging_levels():
    setup_logging(log_format="json", log_level="warning")
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("aiosqlite").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
