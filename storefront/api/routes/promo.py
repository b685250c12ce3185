from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.api.deps import get_promo_engine
from storefront.core.auth import verify_api_key
from storefront.core.rate_limit import rate_limited
from storefront.schemas.promo import (
    PromoAcceptedResponse,
    PromoCheckRequest,
    PromoRejectedResponse,
)
from storefront.services.promo_service import PromoEngine, PromoResult

router = APIRouter(tags=["Promo"])


def _result_response(result: PromoResult, *, rejected_status: int) -> JSONResponse:
    status_code = 200 if result.accepted else rejected_status
    return JSONResponse(
        status_code=status_code,
        content=result.to_response().model_dump(mode="json"),
    )


@router.post(
    "/promo/validate",
    response_model=PromoAcceptedResponse,
    responses={
        400: {"model": PromoRejectedResponse, "description": "Code rejected"},
        429: {"description": "Too many attempts from this client"},
        503: {"description": "Promo store unavailable, retry later"},
    },
    dependencies=[Depends(rate_limited("promo_validate"))],
)
def validate_promo(
    body: PromoCheckRequest,
    engine: Annotated[PromoEngine, Depends(get_promo_engine)],
) -> JSONResponse:
    """Check a promo code against the customer's cart.

    Returns the public promo fields and the discount for ``order_total``
    (rounded to cents). A rejection carries a machine-readable ``reason``
    and a message for display.
    """
    result = engine.validate(body.code, body.order_total, body.product_ids)
    return _result_response(result, rejected_status=400)


@router.post(
    "/promo/redeem",
    response_model=PromoAcceptedResponse,
    responses={
        409: {"model": PromoRejectedResponse, "description": "Code no longer redeemable"},
        503: {"description": "Promo store unavailable, retry later"},
    },
    dependencies=[Depends(verify_api_key)],
)
def redeem_promo(
    body: PromoCheckRequest,
    engine: Annotated[PromoEngine, Depends(get_promo_engine)],
) -> JSONResponse:
    """Record one use of a promo code while finalizing an order.

    The code is validated again at this point; the usage counter is only
    incremented if a slot is still available.
    """
    result = engine.redeem(body.code, body.order_total, body.product_ids)
    return _result_response(result, rejected_status=409)
