"""
Content Policy

Decides, per media type, how a request or response body appears in an
exchange record.

| Media type                                   | Request side        | Response side        |
|----------------------------------------------|---------------------|----------------------|
| application/json                             | parsed object       | pretty-printed JSON  |
| application/x-www-form-urlencoded            | parsed form fields  | raw text             |
| multipart/form-data                          | parsed form fields  | raw text             |
| image/*, audio/*, text/html,                 | <binary data>       | <binary data>        |
| application/octet-stream                     |                     |                      |
| anything else, or no Content-Type            | <unsupported ...>   | <unsupported ...>    |

The table is closed: a media type that is not listed resolves to the
unsupported placeholder, so raw bytes of an unknown format never reach the log.

Body values are a tagged variant (NotCaptured, Structured, Raw, Redacted,
Unsupported) rendered by render().
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from starlette.datastructures import FormData, UploadFile

from exchangelog.core.exceptions import BodyParseError

__all__ = [
    "Mode",
    "NotCaptured",
    "Structured",
    "Raw",
    "Redacted",
    "Unsupported",
    "BodyValue",
    "NOT_CAPTURED_PLACEHOLDER",
    "BINARY_PLACEHOLDER",
    "UNSUPPORTED_PLACEHOLDER",
    "normalize_media_type",
    "classify",
    "request_params",
    "form_fields",
    "response_body",
    "render",
]

NOT_CAPTURED_PLACEHOLDER = "<none>"
BINARY_PLACEHOLDER = "<binary data>"
UNSUPPORTED_PLACEHOLDER = "<unsupported content type>"


class Mode(str, Enum):
    """Body handling mode for a media type."""
    JSON = "json"
    FORM = "form"
    BINARY = "binary"
    UNSUPPORTED = "unsupported"


_EXACT_TYPES: Dict[str, Mode] = {
    "application/json": Mode.JSON,
    "application/x-www-form-urlencoded": Mode.FORM,
    "multipart/form-data": Mode.FORM,
    "text/html": Mode.BINARY,
    "application/octet-stream": Mode.BINARY,
}

# Matched on the part before "/"
_BINARY_FAMILIES = frozenset({"image", "audio"})


@dataclass(frozen=True)
class NotCaptured:
    """No body, or a body that could not be read or parsed."""


@dataclass(frozen=True)
class Structured:
    """Parsed key-value content (JSON object or form fields)."""
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Raw:
    """Text logged verbatim."""
    text: str


@dataclass(frozen=True)
class Redacted:
    """Binary or static content replaced by a placeholder."""


@dataclass(frozen=True)
class Unsupported:
    """Content type outside the policy table."""


BodyValue = Union[NotCaptured, Structured, Raw, Redacted, Unsupported]


def normalize_media_type(raw: Optional[str]) -> str:
    """
    Strip parameters and case from a Content-Type header value.

    "Application/JSON; charset=utf-8" -> "application/json"
    """
    if not raw:
        return ""
    return raw.split(";", 1)[0].strip().lower()


def classify(media_type: Optional[str]) -> Mode:
    """
    Map a media type (raw or normalized) to its handling mode.

    Total: every input, including None and garbage, yields a Mode.
    """
    normalized = normalize_media_type(media_type)
    mode = _EXACT_TYPES.get(normalized)
    if mode is not None:
        return mode

    family, slash, subtype = normalized.partition("/")
    if slash and subtype and family in _BINARY_FAMILIES:
        return Mode.BINARY
    return Mode.UNSUPPORTED


def _decode(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


def request_params(mode: Mode, body: bytes, form: Optional[FormData] = None) -> BodyValue:
    """
    Describe a request body for the "params" field.

    Args:
        mode: Result of classify() for the request Content-Type
        body: Full request body as read by the middleware
        form: Form fields parsed by Starlette, used for Mode.FORM

    Returns:
        The body value to log

    Raises:
        BodyParseError: If a JSON body is malformed
    """
    if not body:
        return NotCaptured()

    if mode is Mode.JSON:
        text = _decode(body)
        try:
            parsed = json.loads(text)
        except (ValueError, RecursionError) as e:
            raise BodyParseError("application/json", e)
        if isinstance(parsed, dict):
            return Structured(parsed)
        return Raw(text)

    if mode is Mode.FORM:
        if form is None:
            return NotCaptured()
        return Structured(form_fields(form))

    if mode is Mode.BINARY:
        return Redacted()
    return Unsupported()


def form_fields(form: FormData) -> Dict[str, Any]:
    """
    Flatten parsed form data into a plain dict.

    Repeated keys become lists and uploaded files are logged by name only.
    """
    fields: Dict[str, Any] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            value = f"<file: {value.filename}>"
        if key in fields:
            existing = fields[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                fields[key] = [existing, value]
        else:
            fields[key] = value
    return fields


def response_body(mode: Mode, body: bytes) -> BodyValue:
    """
    Describe a captured response body for the "response" field.

    JSON is re-indented when it parses and logged unchanged when it does
    not; this never raises.
    """
    if mode is Mode.JSON:
        text = _decode(body)
        try:
            return Raw(json.dumps(json.loads(text), indent=2, ensure_ascii=False))
        except (ValueError, RecursionError):
            return Raw(text)

    if mode is Mode.FORM:
        return Raw(_decode(body))

    if mode is Mode.BINARY:
        return Redacted()
    return Unsupported()


def render(value: BodyValue) -> str:
    """Render a body value as it appears in the record."""
    if isinstance(value, Raw):
        return value.text
    if isinstance(value, Structured):
        return json.dumps(value.fields, ensure_ascii=False, default=str)
    if isinstance(value, Redacted):
        return BINARY_PLACEHOLDER
    if isinstance(value, Unsupported):
        return UNSUPPORTED_PLACEHOLDER
    if isinstance(value, NotCaptured):
        return NOT_CAPTURED_PLACEHOLDER
    raise TypeError(f"Unknown body value: {value!r}")
