"""
XML envelope codec for the eBay Trading API.

Request trees follow the xmltodict convention: dicts are elements, lists
are repeated elements, ``@name`` keys are attributes and ``#text`` holds
element text. Responses are parsed with xmltodict into the same shape.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from xml.parsers.expat import ExpatError
from xml.sax.saxutils import escape, quoteattr

import xmltodict

from api.errors import ApiErrorDetail, MalformedResponseError, TradingApiError


EBAY_NAMESPACE = "urn:ebay:apis:eBLBaseComponents"
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

FAILURE_ACKS = ("Failure", "PartialFailure")

# (parent, element) pairs whose text may carry seller HTML
RICH_TEXT_FIELDS = {("Item", "Description"), ("ReturnPolicy", "Description")}


class Cdata:
    """Raw text emitted verbatim inside a CDATA section."""

    __slots__ = ("text",)

    def __init__(self, text: str):
        self.text = str(text)

    def render(self) -> str:
        # "]]>" cannot appear inside a section; split it across two
        return "<![CDATA[" + self.text.replace("]]>", "]]]]><![CDATA[>") + "]]>"

    def __eq__(self, other):
        return isinstance(other, Cdata) and other.text == self.text

    def __repr__(self):
        return f"Cdata({self.text!r})"


def as_list(value: Any) -> List[Any]:
    """Normalize a single-or-repeated element to a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _needs_cdata(path: Tuple[str, ...], value: Any) -> bool:
    if not isinstance(value, str) or len(path) < 2:
        return False
    if (path[-2], path[-1]) not in RICH_TEXT_FIELDS:
        return False
    return "<" in value or "&" in value


def _render_text(value: Any) -> str:
    if isinstance(value, Cdata):
        return value.render()
    return escape(_format_scalar(value))


def _render_element(tag: str, value: Any, path: Tuple[str, ...], out: List[str]) -> None:
    if value is None:
        return
    if isinstance(value, list):
        for entry in value:
            _render_element(tag, entry, path, out)
        return

    element_path = path + (tag,)

    if isinstance(value, dict):
        attributes = "".join(
            f" {key[1:]}={quoteattr(_format_scalar(attr))}"
            for key, attr in value.items()
            if key.startswith("@") and attr is not None
        )
        out.append(f"<{tag}{attributes}>")
        text = value.get("#text")
        if text is not None:
            if _needs_cdata(element_path, text):
                text = Cdata(text)
            out.append(_render_text(text))
        for key, child in value.items():
            if key.startswith("@") or key == "#text":
                continue
            _render_element(key, child, element_path, out)
        out.append(f"</{tag}>")
        return

    if _needs_cdata(element_path, value):
        value = Cdata(value)
    out.append(f"<{tag}>{_render_text(value)}</{tag}>")


def encode(call_name: str, params: Dict[str, Any]) -> str:
    """
    Build the XML request document for a Trading API call.

    Args:
        call_name: Trading API call name, e.g. "GetItem"
        params: Request body tree in xmltodict convention

    Returns:
        Complete XML document with declaration and namespaced root
    """
    root = f"{call_name}Request"
    body = {"ErrorLanguage": "en_US", "WarningLevel": "High"}
    body.update(params or {})

    out = [XML_DECLARATION, f'<{root} xmlns="{EBAY_NAMESPACE}">']
    for key, value in body.items():
        _render_element(key, value, (), out)
    out.append(f"</{root}>")
    return "".join(out)


def extract_errors(response: Dict[str, Any]) -> List[ApiErrorDetail]:
    """Normalize the Errors container(s) of a response, keeping eBay's order."""
    details = []
    for entry in as_list(response.get("Errors")):
        if not isinstance(entry, dict):
            continue
        details.append(ApiErrorDetail(
            code=str(entry.get("ErrorCode") or "UNKNOWN"),
            short_message=entry.get("ShortMessage") or "Unknown error",
            long_message=entry.get("LongMessage"),
            severity=entry.get("SeverityCode"),
        ))
    return details


def decode(xml: str, call_name: str, status_code: Optional[int] = None) -> Dict[str, Any]:
    """
    Parse a Trading API response document.

    Args:
        xml: Raw response body
        call_name: Call the response belongs to
        status_code: HTTP status, attached to malformed-response errors

    Returns:
        Content of the ``{call_name}Response`` element

    Raises:
        MalformedResponseError: Body is not XML or lacks the response root
        TradingApiError: Ack is Failure or PartialFailure
    """
    try:
        parsed = xmltodict.parse(xml)
    except (ExpatError, TypeError) as e:
        raise MalformedResponseError(call_name, str(xml or ""), status_code) from e

    root = f"{call_name}Response"
    if not isinstance(parsed, dict) or root not in parsed:
        raise MalformedResponseError(call_name, str(xml), status_code)

    response = parsed[root]
    if not isinstance(response, dict):
        response = {}

    ack = response.get("Ack")
    if ack in FAILURE_ACKS:
        raise TradingApiError(extract_errors(response), ack, call_name)

    return response
