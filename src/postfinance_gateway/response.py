"""Gateway response parsing and classification.

The gateway answers with a single tag whose attributes carry every
result field, e.g.::

    <?xml version="1.0"?>
    <ncresponse orderID="TX1" PAYID="3014728" NCERROR="0" STATUS="5"
        ACCEPTANCE="test123" amount="130" currency="CHF"></ncresponse>

This is not a general XML parser.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Mapping

from postfinance_gateway.errors import PaymentGatewayError, PaymentSystemError
from postfinance_gateway.messages import describe_error, describe_status

logger = logging.getLogger(__name__)

ATTRIBUTE_RE = re.compile(r'(\S+?)\s*=\s*"([^"]*)"')
FIRST_ELEMENT_RE = re.compile(r"<(?![?!/])[\w:.-]+(?P<attrs>[^>]*)>", re.DOTALL)

ERROR_FIELD = "NCERROR"
ERROR_TEXT_FIELD = "NCERRORPLUS"


def _element_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(
        r"<" + re.escape(tag) + r"(?P<attrs>(?:\s[^>]*)?)>",
        re.DOTALL | re.IGNORECASE,
    )


def parse_attributes(text: str, tag: str | None = None) -> dict[str, str]:
    """Extract name="value" attributes from the first element.

    Args:
        text: Raw response body.
        tag: Element name to look for; defaults to the first element
            after any XML declaration.

    Returns:
        Attribute map; attributes with empty values are dropped.
    """
    pattern = _element_pattern(tag) if tag else FIRST_ELEMENT_RE
    match = pattern.search(text or "")
    if not match:
        return {}

    node = re.sub(r"[\r\n]", " ", match.group("attrs"))
    return {
        name: html.unescape(value) for name, value in ATTRIBUTE_RE.findall(node) if value
    }


def is_success(fields: Mapping[str, str | int]) -> bool:
    """NCERROR 0 (string or int) means success.

    A response without NCERROR carries nothing to classify. Callbacks are
    judged this way; request round trips go through raise_for_error.
    """
    code = fields.get(ERROR_FIELD)
    if code is None:
        return True
    return str(code).strip() == "0"


def raise_for_error(
    fields: Mapping[str, str],
    context: str | None = None,
) -> None:
    """Raise when a round trip did not succeed.

    A body without NCERROR (maintenance page, proxy error) raises
    PaymentSystemError; a non-zero NCERROR raises PaymentGatewayError.

    Args:
        fields: Parsed response attributes.
        context: Caller supplied context appended to the error message.
    """
    if ERROR_FIELD not in fields:
        logger.error("Gateway response carries no %s: %s", ERROR_FIELD, sorted(fields))
        raise PaymentSystemError("Unexpected gateway response", dict(fields))
    if is_success(fields):
        return

    info = describe_error(fields[ERROR_FIELD])
    description = fields.get(ERROR_TEXT_FIELD) or info.description
    status = describe_status(fields.get("STATUS"))

    logger.warning(
        "Gateway declined operation: NCERROR=%s STATUS=%s",
        fields[ERROR_FIELD],
        status.label if status else fields.get("STATUS"),
    )

    raise PaymentGatewayError(
        code=info.code,
        status=info.status,
        description=description,
        context=context,
        response=dict(fields),
    )
