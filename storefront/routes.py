import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront import config
from storefront.checkout import registry
from storefront.database import SessionLocal
from storefront.errors import GatewayError, ValidationError
from storefront.gateway import get_gateway
from storefront.models import Group, load_profile, ordered_gallery

logger = logging.getLogger(__name__)

router = APIRouter()


class PaymentRequest(BaseModel):
    amount: float = Field(allow_inf_nan=False)


class CheckPaymentRequest(BaseModel):
    transactionId: str = ""


class AgeConfirmation(BaseModel):
    confirmed: bool


def format_brl(value) -> str:
    return f"R$ {float(value):.2f}".replace(".", ",")


def serialize_gallery_item(item) -> dict:
    return {
        "id": item.id,
        "type": item.type,
        "url": item.url,
        "thumbnail_url": item.thumbnail_url,
        "is_preview": bool(item.is_preview),
        "display_order": item.display_order,
    }


def serialize_group(group) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "link": group.link,
        "banner_url": group.banner_url,
        "members": group.members,
    }


def require_age_verified(age_verified: Optional[str] = Cookie(None)):
    if age_verified != "1":
        raise HTTPException(status_code=403, detail="Age verification required")
    return True


# --- internal payment functions -------------------------------------------

@router.post("/create-pix-payment")
def create_pix_payment(request: PaymentRequest, gateway=Depends(get_gateway)):
    try:
        intent = gateway.create_intent(request.amount)
    except (ValidationError, GatewayError) as exc:
        logger.warning("create-pix-payment failed: %s", exc.message)
        return JSONResponse(status_code=400, content={"success": False, "error": exc.message})

    return {
        "success": True,
        "paymentCode": intent.payment_code,
        "paymentCodeBase64": intent.payment_code_base64,
        "transactionId": intent.transaction_id,
        "status": intent.status,
    }


@router.post("/check-pix-payment")
def check_pix_payment(request: CheckPaymentRequest, gateway=Depends(get_gateway)):
    try:
        status = gateway.check_status(request.transactionId)
    except (ValidationError, GatewayError) as exc:
        logger.warning("check-pix-payment failed: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": exc.message, "isPaid": False},
        )

    return {
        "success": True,
        "transactionId": status.transaction_id,
        "status": status.status,
        "isPaid": status.is_paid,
        "rawStatus": status.raw,
    }


# --- age gate ---------------------------------------------------------------

@router.post("/age-verification")
def verify_age(request: AgeConfirmation, response: Response):
    if not request.confirmed:
        return {"verified": False, "redirect": config.AGE_GATE_EXIT_URL}

    response.set_cookie(config.AGE_COOKIE, "1", max_age=60 * 60 * 24 * 365, httponly=True, samesite="lax")
    return {"verified": True}


# --- profile and groups -------------------------------------------------------

@router.get("/profile")
def get_profile(verified=Depends(require_age_verified)):
    db = SessionLocal()
    try:
        profile = load_profile(db)
        preview = ordered_gallery(db, previews_only=True)
        return {
            "id": profile.id,
            "name": profile.name,
            "bio": profile.bio,
            "banner_url": profile.banner_url,
            "avatar_url": profile.avatar_url,
            "price": profile.price,
            "price_label": format_brl(profile.price),
            "button_text": profile.button_text,
            "button_color": profile.button_color,
            "photos_count": profile.photos_count,
            "videos_count": profile.videos_count,
            "preview": [dict(serialize_gallery_item(item), blurred=True) for item in preview],
        }
    finally:
        db.close()


@router.get("/groups")
def list_groups(verified=Depends(require_age_verified)):
    db = SessionLocal()
    try:
        return [serialize_group(g) for g in db.query(Group).order_by(Group.id).all()]
    finally:
        db.close()


# --- checkout -----------------------------------------------------------------

def _checkout_or_404(checkout_id: str):
    try:
        return registry.get(checkout_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Checkout not found")


@router.post("/checkout")
def open_checkout(verified=Depends(require_age_verified), gateway=Depends(get_gateway)):
    db = SessionLocal()
    try:
        profile = load_profile(db)
        price, delivery_link = profile.price, profile.delivery_link
    finally:
        db.close()

    checkout_id, session = registry.start(gateway, price, delivery_link)
    return {"checkout_id": checkout_id, **session.snapshot()}


@router.get("/checkout/{checkout_id}")
def get_checkout(checkout_id: str, verified=Depends(require_age_verified)):
    return {"checkout_id": checkout_id, **_checkout_or_404(checkout_id).snapshot()}


@router.post("/checkout/{checkout_id}/retry")
def retry_checkout(checkout_id: str, verified=Depends(require_age_verified)):
    session = _checkout_or_404(checkout_id).retry()
    return {"checkout_id": checkout_id, **session.snapshot()}


@router.post("/checkout/{checkout_id}/confirm")
def confirm_checkout(checkout_id: str, verified=Depends(require_age_verified)):
    session = _checkout_or_404(checkout_id).confirm_paid()
    return {"checkout_id": checkout_id, **session.snapshot()}


@router.delete("/checkout/{checkout_id}")
def close_checkout(checkout_id: str, verified=Depends(require_age_verified)):
    try:
        session = registry.close(checkout_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Checkout not found")
    return {"checkout_id": checkout_id, **session.snapshot()}
