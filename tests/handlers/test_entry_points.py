"""
Tests for the Lambda entry point and the local CLI.
"""

import json
from types import SimpleNamespace

import pytest

from folderfusion.core.constants import ErrorCodes

import lambda_handler as lambda_module
import main as main_module


@pytest.fixture
def context():
    return SimpleNamespace(aws_request_id="req-42")


# ============================================================================
# Tests for lambda_handler
# ============================================================================


@pytest.mark.unit
def test_options_request_returns_cors_preflight(context):
    response = lambda_module.lambda_handler({"httpMethod": "OPTIONS"}, context)

    assert response["statusCode"] == 200
    assert response["body"] == ""


@pytest.mark.unit
def test_invalid_event_returns_400(context):
    response = lambda_module.lambda_handler({"body": json.dumps({"operation": "GET_TREE"})}, context)

    body = json.loads(response["body"])
    assert response["statusCode"] == 400
    assert body["error_code"] == "MISSING_SOURCE"


@pytest.mark.unit
def test_unknown_operation_returns_400(context):
    response = lambda_module.lambda_handler({"operation": "DOWNLOAD", "source": "local", "path": "."}, context)
    assert response["statusCode"] == 400


@pytest.mark.unit
def test_get_tree_is_routed_to_the_tree_handler(context, monkeypatch):
    received = []

    def fake_handle(request):
        received.append(request)
        return {"statusCode": 200, "headers": {}, "body": "{}"}

    monkeypatch.setattr(lambda_module, "handle_get_tree", fake_handle)

    response = lambda_module.lambda_handler({
        "body": json.dumps({
            "operation": "GET_TREE",
            "source": "github",
            "reference": "https://github.com/acme/widgets",
        })
    }, context)

    assert response["statusCode"] == 200
    assert received[0].reference.full_name == "acme/widgets"


@pytest.mark.unit
def test_local_source_is_rejected_over_http(context, local_project):
    (local_project / "settings.env").write_text("aws_secret=abc", encoding="utf-8")

    response = lambda_module.lambda_handler({
        "operation": "GET_TREE",
        "source": "local",
        "path": str(local_project),
    }, context)

    body = json.loads(response["body"])
    assert response["statusCode"] == 400
    assert body["error_code"] == ErrorCodes.INVALID_SOURCE
    assert "aws_secret" not in response["body"]
    assert "a.txt" not in response["body"]


@pytest.mark.unit
def test_event_strings_are_nfc_normalized():
    decomposed = "cancio\u0301n"

    normalized = lambda_module._normalize_event_encoding({"path": decomposed, "list": [decomposed], "n": 1})

    assert normalized == {"path": "canci\u00f3n", "list": ["canci\u00f3n"], "n": 1}


# ============================================================================
# Tests for the local CLI
# ============================================================================


@pytest.mark.unit
def test_main_returns_zero_on_success(local_project, capsys):
    assert main_module.main(["--source", "local", "--path", str(local_project)]) == 0
    assert "📁 project" in capsys.readouterr().out


@pytest.mark.unit
def test_main_returns_one_on_invalid_arguments(capsys):
    assert main_module.main(["--path", "."]) == 1
    assert "source" in capsys.readouterr().out


@pytest.mark.unit
def test_main_returns_one_when_build_fails(tmp_path):
    assert main_module.main(["--source", "local", "--path", str(tmp_path / "missing")]) == 1
