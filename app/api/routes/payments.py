from fastapi import APIRouter, Depends

from app.api.deps import get_checkout_bridge
from app.api.models import CheckoutSessionRequest
from app.config import get_settings
from app.services.payments import CheckoutBridge, CheckoutRequest

router = APIRouter()


@router.post("/create-checkout-session")
async def create_checkout_session(request: CheckoutSessionRequest, bridge: CheckoutBridge = Depends(get_checkout_bridge)) -> dict[str, str]:  # noqa: B008
  """Return the hosted checkout URL. Premium status is not changed here."""
  settings = get_settings()
  checkout = CheckoutRequest(
    amount=request.amount, display_name=request.display_name, success_url_template=settings.checkout_success_url, cancel_url=settings.checkout_cancel_url, customer_email=request.customer_email
  )
  return {"url": await bridge.create_session(checkout)}
