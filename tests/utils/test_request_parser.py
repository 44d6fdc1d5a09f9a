"""
Tests for Lambda event and local CLI parsing.
"""

import json
from types import SimpleNamespace

import pytest

from folderfusion.core.constants import ErrorCodes, Operations
from folderfusion.core.exceptions import InvalidInputError
from folderfusion.utils.request_parser import (
    _extract_event_body,
    parse_lambda_event,
    parse_local_event,
)

GITHUB_BODY = {
    "operation": "GET_TREE",
    "source": "github",
    "reference": "https://github.com/acme/widgets",
}


@pytest.fixture
def context():
    return SimpleNamespace(aws_request_id="req-123")


# ============================================================================
# Tests for Lambda events
# ============================================================================


@pytest.mark.unit
def test_extract_body_from_api_gateway_string():
    assert _extract_event_body({"body": json.dumps(GITHUB_BODY)}) == GITHUB_BODY


@pytest.mark.unit
def test_extract_body_from_dict_body():
    assert _extract_event_body({"body": GITHUB_BODY}) == GITHUB_BODY


@pytest.mark.unit
def test_extract_body_from_direct_invocation():
    assert _extract_event_body(GITHUB_BODY) is GITHUB_BODY


@pytest.mark.unit
@pytest.mark.parametrize("event, code", [
    ({"body": "{not json"}, ErrorCodes.INVALID_JSON),
    ({"body": 42}, ErrorCodes.INVALID_JSON),
    ({"source": "github"}, ErrorCodes.MISSING_OPERATION),
    ("GET_TREE", ErrorCodes.INVALID_JSON),
])
def test_extract_body_rejects_bad_events(event, code):
    with pytest.raises(InvalidInputError) as exc_info:
        _extract_event_body(event)
    assert exc_info.value.error_code == code


@pytest.mark.unit
def test_parse_lambda_event(context):
    request = parse_lambda_event({"body": json.dumps(GITHUB_BODY)}, context)

    assert request.source == "github"
    assert request.reference.full_name == "acme/widgets"
    assert request.operation == Operations.GET_TREE


# ============================================================================
# Tests for local execution
# ============================================================================


@pytest.mark.unit
def test_parse_local_cli_arguments(tmp_path):
    request, output = parse_local_event([
        "--source", "local",
        "--path", str(tmp_path),
        "--exclude", "dist,build",
        "--max-depth", "2",
        "--show-hidden",
        "--format", "json",
        "--no-content",
    ])

    assert request.source == "local"
    assert request.path == str(tmp_path)
    assert request.options.exclude_patterns == frozenset({"dist", "build"})
    assert request.options.max_depth == 2
    assert request.options.show_hidden is True
    assert output == {"format": "json", "include_content": False}


@pytest.mark.unit
def test_parse_local_cli_defaults():
    request, output = parse_local_event(["--source", "github", "--reference", "github.com/acme/widgets"])

    assert request.operation == Operations.GET_TREE
    assert output == {"format": "text", "include_content": True}


@pytest.mark.unit
def test_parse_local_event_file(tmp_path):
    event_file = tmp_path / "event.json"
    event_file.write_text(json.dumps({"source": "local", "path": "./project"}), encoding="utf-8")

    request, output = parse_local_event([str(event_file)])

    assert request.path == "./project"
    assert request.operation == Operations.GET_TREE
    assert output["format"] == "text"


@pytest.mark.unit
def test_missing_event_file_is_rejected(tmp_path):
    with pytest.raises(InvalidInputError):
        parse_local_event([str(tmp_path / "missing.json")])


@pytest.mark.unit
@pytest.mark.parametrize("argv", [
    [],
    ["--path", "."],
    ["--source"],
    ["--source", "local", "--path", ".", "--format", "xml"],
])
def test_invalid_cli_arguments_are_rejected(argv):
    with pytest.raises(InvalidInputError):
        parse_local_event(argv)
