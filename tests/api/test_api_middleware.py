"""Unit tests for the API middleware helpers."""

from __future__ import annotations

import json

import pytest

from searchmetrics.api.middleware.auth import _is_bypass
from searchmetrics.api.middleware.errors import error_response, handle_error, status_for_error_code
from searchmetrics.core.errors import AuthorizationError
from searchmetrics.ops.result import OperationResult


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/health", True),
        ("/api/v1/docs", True),
        ("/api/v1/redoc", True),
        ("/api/v1/openapi.json", True),
        ("/api/v1/metrics/clear-before", False),
        ("/api/v1/metrics/tables", False),
    ],
)
def test_bypass_paths(path, expected):
    assert _is_bypass(path) is expected


@pytest.mark.parametrize(
    ("code", "status"),
    [
        ("INVALID_INPUT", 400),
        ("UNAUTHORIZED", 401),
        ("INTERNAL", 500),
        ("UNAVAILABLE", 503),
        ("CANCELLED", 504),
        ("SOMETHING_NEW", 500),
    ],
)
def test_status_for_error_code(code, status):
    assert status_for_error_code(code) == status


def test_handle_error_builds_problem_detail():
    result = OperationResult.fail("UNAVAILABLE", "database is down", retryable=True)

    response = handle_error(result, instance="http://testserver/api/v1/metrics/clear-before")

    assert response.status_code == 503
    body = json.loads(response.body)
    assert body["title"] == "Service Unavailable"
    assert body["detail"] == "database is down"
    assert body["type"] == "about:blank"


def test_error_response_for_authorization_error():
    response = error_response(AuthorizationError("no key"), instance="http://testserver/api/v1/metrics/tables")

    assert response.status_code == 401
    body = json.loads(response.body)
    assert body["title"] == "Unauthorized"
    assert body["detail"] == "no key"
