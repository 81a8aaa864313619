"""Tests for the error envelope."""

import json
from unittest.mock import patch

from starlette.requests import Request

from src.careconnect.core.config import Settings
from src.careconnect.core.responses import ResponseMeta, error_response


def _request(request_id: str | None = None) -> Request:
    scope = {"type": "http", "method": "GET", "path": "/", "headers": [], "state": {}}
    if request_id:
        scope["state"]["request_id"] = request_id
    return Request(scope)


def test_meta_version_follows_settings(settings: Settings):
    release = settings.model_copy(update={"APP_VERSION": "2.3.4"})
    with patch("src.careconnect.core.responses.get_settings", return_value=release):
        assert ResponseMeta().version == "2.3.4"


def test_error_response_carries_request_id(settings: Settings):
    response = error_response(
        _request("req-77"), 409, "ROLE_ALREADY_ASSIGNED", "Role already set", {"current_role": "nurse"}
    )

    body = json.loads(response.body)
    assert response.status_code == 409
    assert body["success"] is False
    assert body["error"] == {
        "code": "ROLE_ALREADY_ASSIGNED",
        "message": "Role already set",
        "details": {"current_role": "nurse"},
    }
    assert body["meta"]["request_id"] == "req-77"
    assert body["meta"]["version"] == settings.APP_VERSION


def test_error_response_without_request_id():
    body = json.loads(error_response(_request(), 500, "INTERNAL_ERROR", "boom").body)
    assert body["meta"]["request_id"] is None
    assert body["error"]["details"] is None
