"""Tests for api/base.py - response shapes and error messages."""

import json

from api.base import CodeRequestResponse, ErrorMessages, error_response


class TestErrorResponse:
    def test_body_shape(self):
        response = error_response(401, ErrorMessages.INVALID_CODE)

        assert response.status_code == 401
        assert json.loads(response.body) == {"error": "Ogiltig eller utgången kod"}

    def test_headers(self):
        response = error_response(429, "slow down", headers={"Retry-After": "30"})

        assert response.headers["Retry-After"] == "30"

    def test_non_ascii_preserved(self):
        response = error_response(400, ErrorMessages.EMAIL_AND_CODE_REQUIRED)

        assert json.loads(response.body.decode("utf-8"))["error"] == "E-post och kod krävs"


class TestCodeRequestResponse:
    def test_success_default(self):
        assert CodeRequestResponse(message="ok").model_dump() == {"success": True, "message": "ok"}


class TestErrorMessages:
    def test_rate_limited_template(self):
        assert "30" in ErrorMessages.RATE_LIMITED.format(seconds=30)

    def test_invalid_code_is_single_message(self):
        assert ErrorMessages.INVALID_CODE == "Ogiltig eller utgången kod"
