"""
Tests for media type classification and body rendering.
"""

import json

import pytest
from starlette.datastructures import FormData, UploadFile

from exchangelog.core.exceptions import BodyParseError
from exchangelog.middleware.content_policy import (
    BINARY_PLACEHOLDER,
    NOT_CAPTURED_PLACEHOLDER,
    UNSUPPORTED_PLACEHOLDER,
    Mode,
    NotCaptured,
    Raw,
    Redacted,
    Structured,
    Unsupported,
    classify,
    form_fields,
    normalize_media_type,
    render,
    request_params,
    response_body,
)


class TestNormalizeMediaType:

    def test_strips_parameters(self):
        assert normalize_media_type("application/json; charset=utf-8") == "application/json"
        assert normalize_media_type("multipart/form-data; boundary=abc") == "multipart/form-data"

    def test_case_and_whitespace(self):
        assert normalize_media_type("  Application/JSON ;charset=UTF-8") == "application/json"

    def test_absent(self):
        assert normalize_media_type(None) == ""
        assert normalize_media_type("") == ""


class TestClassify:

    @pytest.mark.parametrize("media_type, expected", [
        ("application/json", Mode.JSON),
        ("application/json; charset=utf-8", Mode.JSON),
        ("APPLICATION/JSON", Mode.JSON),
        ("application/x-www-form-urlencoded", Mode.FORM),
        ("multipart/form-data; boundary=----x", Mode.FORM),
        ("image/png", Mode.BINARY),
        ("image/svg+xml", Mode.BINARY),
        ("audio/mpeg", Mode.BINARY),
        ("text/html; charset=utf-8", Mode.BINARY),
        ("application/octet-stream", Mode.BINARY),
    ])
    def test_listed_types(self, media_type, expected):
        assert classify(media_type) is expected

    @pytest.mark.parametrize("media_type", [
        None,
        "",
        ";",
        "garbage",
        "image",
        "image/",
        "text/plain",
        "application/xml",
        "video/mp4",
        "application/vnd.api+json",
        "\x00\xff",
    ])
    def test_everything_else_is_unsupported(self, media_type):
        assert classify(media_type) is Mode.UNSUPPORTED


class TestRequestParams:

    def test_empty_body_is_not_captured(self):
        for mode in Mode:
            assert request_params(mode, b"") == NotCaptured()

    def test_json_object(self):
        value = request_params(Mode.JSON, b'{"name": "Ann", "tags": [1, 2]}')
        assert value == Structured({"name": "Ann", "tags": [1, 2]})

    def test_json_non_object_kept_as_text(self):
        assert request_params(Mode.JSON, b"[1, 2]") == Raw("[1, 2]")

    def test_malformed_json_raises_parse_error(self):
        with pytest.raises(BodyParseError):
            request_params(Mode.JSON, b'{"name": ')

    def test_deeply_nested_json_raises_parse_error(self):
        with pytest.raises(BodyParseError):
            request_params(Mode.JSON, b"[" * 100000)

    def test_form_uses_parsed_fields(self):
        form = FormData([("user", "ann"), ("role", "a"), ("role", "b")])
        value = request_params(Mode.FORM, b"user=ann&role=a&role=b", form)
        assert value == Structured({"user": "ann", "role": ["a", "b"]})

    def test_form_without_parsed_fields(self):
        assert request_params(Mode.FORM, b"user=ann") == NotCaptured()

    def test_binary_and_unsupported(self):
        assert request_params(Mode.BINARY, b"\x89PNG") == Redacted()
        assert request_params(Mode.UNSUPPORTED, b"plain text") == Unsupported()


class TestFormFields:

    def test_upload_logged_by_name(self):
        upload = UploadFile(file=None, filename="avatar.png")
        form = FormData([("avatar", upload), ("caption", "me")])
        assert form_fields(form) == {"avatar": "<file: avatar.png>", "caption": "me"}


class TestResponseBody:

    def test_json_is_pretty_printed(self):
        value = response_body(Mode.JSON, b'{"id":42,"name":"Ann"}')
        assert isinstance(value, Raw)
        assert value.text == '{\n  "id": 42,\n  "name": "Ann"\n}'
        assert json.loads(value.text) == {"id": 42, "name": "Ann"}

    def test_malformed_json_logged_unchanged(self):
        raw = b'{"id": 42, "name": '
        assert response_body(Mode.JSON, raw) == Raw(raw.decode())

    def test_deeply_nested_json_logged_unchanged(self):
        raw = b"[" * 100000
        assert response_body(Mode.JSON, raw) == Raw(raw.decode())

    def test_form_logged_verbatim(self):
        assert response_body(Mode.FORM, b"a=1&b=2") == Raw("a=1&b=2")

    def test_binary_is_redacted(self):
        assert response_body(Mode.BINARY, b"\x89PNG\r\n\x1a\n") == Redacted()

    def test_unsupported(self):
        assert response_body(Mode.UNSUPPORTED, b"plain") == Unsupported()


class TestRender:

    def test_placeholders(self):
        assert render(NotCaptured()) == NOT_CAPTURED_PLACEHOLDER
        assert render(Redacted()) == BINARY_PLACEHOLDER
        assert render(Unsupported()) == UNSUPPORTED_PLACEHOLDER

    def test_structured_as_json(self):
        assert json.loads(render(Structured({"q": "é", "n": 1}))) == {"q": "é", "n": 1}

    def test_raw_text(self):
        assert render(Raw("line1\nline2")) == "line1\nline2"

    def test_unknown_value_rejected(self):
        with pytest.raises(TypeError):
            render("not a body value")
