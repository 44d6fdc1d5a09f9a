"""
Tests for standardized HTTP responses.
"""

import json

import pytest

from folderfusion.core.constants import ErrorCodes
from folderfusion.core.exceptions import InvalidInputError, NotFoundError, QuotaExceededError
from folderfusion.utils.http_responses import (
    create_cors_preflight_response,
    create_error_response,
    create_exception_response,
    create_success_response,
    create_tree_response,
)


def body_of(response):
    return json.loads(response["body"])


@pytest.mark.unit
def test_success_response():
    response = create_success_response({"mensaje": "ok"})

    body = body_of(response)
    assert response["statusCode"] == 200
    assert response["headers"]["Content-Type"].startswith("application/json")
    assert body["mensaje"] == "ok"
    assert body["success"] is True
    assert "timestamp" in body


@pytest.mark.unit
def test_tree_response_includes_optional_sections():
    response = create_tree_response(
        tree={"name": "repo", "path": "", "type": "directory", "children": []},
        source="github",
        target="acme/widgets",
        text="📁 repo",
        analysis={"total_files": 0},
        progress={"status": "complete"},
        files=[]
    )

    body = body_of(response)
    assert body["source"] == "github"
    assert body["text"] == "📁 repo"
    assert body["progress"] == {"status": "complete"}
    assert body["files"] == []


@pytest.mark.unit
def test_error_response_sanitizes_details():
    response = create_error_response(
        400, "bad", "invalid_input",
        error_code=ErrorCodes.INVALID_OPTIONS,
        details={"field_name": "options", "url": "https://internal", "received_value": "x" * 80}
    )

    body = body_of(response)
    assert body["success"] is False
    assert body["details"]["field_name"] == "options"
    assert "url" not in body["details"]
    assert body["details"]["received_value"].endswith("...")


@pytest.mark.unit
@pytest.mark.parametrize("error, status, error_type", [
    (InvalidInputError("bad"), 400, "invalid_input"),
    (NotFoundError("gone"), 404, "not_found"),
    (QuotaExceededError(), 429, "quota_exceeded"),
])
def test_exception_response_uses_error_kind(error, status, error_type):
    response = create_exception_response(error)

    body = body_of(response)
    assert response["statusCode"] == status
    assert body["error_type"] == error_type
    assert body["error_code"] == error.error_code


@pytest.mark.unit
def test_unexpected_exception_is_a_generic_500():
    response = create_exception_response(RuntimeError("secret internals"))

    body = body_of(response)
    assert response["statusCode"] == 500
    assert body["error_code"] == ErrorCodes.BUILD_FAILED
    assert "secret" not in body["error"]


@pytest.mark.unit
def test_cors_preflight_response():
    response = create_cors_preflight_response()

    assert response["statusCode"] == 200
    assert response["body"] == ""
    assert response["headers"]["Access-Control-Allow-Origin"] == "*"
