"""Gateway callback (SHA-OUT) endpoint.

The gateway calls back with the payment result either in the query string
(GET) or as an urlencoded body (POST). Parameter names arrive in mixed case
(orderID, amount, PAYID, SHASIGN).
"""

import logging
from urllib.parse import parse_qsl

from fastapi import APIRouter, HTTPException, Request, status

from postfinance_gateway.api.dependencies import GatewayConfigDep
from postfinance_gateway.api.schemas import WebhookAck
from postfinance_gateway.messages import describe_status
from postfinance_gateway.response import is_success
from postfinance_gateway.signing import verify_callback

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

# Authorised, payment requested
ACCEPTED_STATUSES = frozenset({5, 9})


@router.api_route(
    "/postfinance",
    methods=["GET", "POST"],
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
)
async def postfinance_callback(request: Request, config: GatewayConfigDep) -> WebhookAck:
    """Verify and classify a gateway callback."""
    encoding = config.sha_encoding
    try:
        params = dict(
            parse_qsl(
                request.url.query, keep_blank_values=True, encoding=encoding, errors="strict"
            )
        )
        if request.method == "POST":
            body = (await request.body()).decode(encoding)
            params.update(
                parse_qsl(body, keep_blank_values=True, encoding=encoding, errors="strict")
            )
    except UnicodeDecodeError as exc:
        logger.warning("Rejected gateway callback not encoded as %s: %s", encoding, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Callback is not valid {encoding}",
        ) from exc

    if not verify_callback(params, config):
        logger.warning("Rejected gateway callback with invalid signature: %s", sorted(params))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid callback signature",
        )

    fields = {key.upper(): value for key, value in params.items()}
    info = describe_status(fields.get("STATUS"))
    accepted = is_success(fields) and info is not None and info.code in ACCEPTED_STATUSES

    logger.info(
        "Gateway callback for order %s: status=%s ncerror=%s",
        fields.get("ORDERID"),
        fields.get("STATUS"),
        fields.get("NCERROR"),
    )
    return WebhookAck(
        order_id=fields.get("ORDERID"),
        pay_id=fields.get("PAYID"),
        status=info.code if info else None,
        status_text=info.label if info else None,
        ncerror=fields.get("NCERROR"),
        accepted=accepted,
    )
