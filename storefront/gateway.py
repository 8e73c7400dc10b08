"""
HTTP client for the SyncPayments PIX gateway.

Every call starts with a client-credentials exchange for a bearer token;
tokens are never cached. There is no retry policy: a failed call is logged
and raised to the caller.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from storefront import config
from storefront.errors import AuthError, ConfigurationError, GatewayError, ValidationError

logger = logging.getLogger(__name__)

MIN_AMOUNT = Decimal("1.00")
PAID_STATUS = "completed"
PRODUCT_TITLE = "Acesso VIP - Conteúdo Exclusivo"

AUTH_PATH = "/api/partner/v1/auth-token"
CREATE_PATH = "/v1/gateway/api"
STATUS_PATH = "/api/partner/v1/transaction/{transaction_id}"


@dataclass(frozen=True)
class PaymentIntent:
    transaction_id: str
    payment_code: str
    amount: float
    payment_code_base64: Optional[str] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class PaymentStatus:
    transaction_id: str
    status: str
    is_paid: bool
    raw: Dict[str, Any]

    @classmethod
    def from_response(cls, transaction_id: str, payload: Dict[str, Any]) -> "PaymentStatus":
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            logger.error("Status response with malformed data: %r", payload)
            raise GatewayError("Falha ao verificar status do pagamento")
        status = data.get("status") or "unknown"
        if not isinstance(status, str):
            logger.error("Status response with malformed status: %r", payload)
            raise GatewayError("Falha ao verificar status do pagamento")
        return cls(
            transaction_id=transaction_id,
            status=status,
            is_paid=status == PAID_STATUS,
            raw=payload,
        )


def build_order_payload(amount: float, *, today: Optional[date] = None, now_ms: Optional[int] = None) -> Dict[str, Any]:
    """Order body for a PIX charge; customer and address are fixed placeholders."""
    today = today or date.today()
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return {
        "ip": "127.0.0.1",
        "pix": {"expiresInDays": (today + timedelta(days=2)).isoformat()},
        "items": [
            {
                "title": PRODUCT_TITLE,
                "quantity": 1,
                "tangible": False,
                "unitPrice": amount,
            }
        ],
        "amount": amount,
        "customer": {
            "cpf": "00000000000",
            "name": "Cliente",
            "email": "cliente@email.com",
            "phone": "11999999999",
            "externaRef": f"club_{now_ms}",
            "address": {
                "city": "São Paulo",
                "state": "SP",
                "street": "Rua Principal",
                "country": "BR",
                "zipCode": "01000-000",
                "complement": "",
                "neighborhood": "Centro",
                "streetNumber": "1",
            },
        },
        "metadata": {"provider": "ClubSystem"},
        "traceable": True,
    }


def _json(response: httpx.Response, failure: str) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        logger.error("%s: non-JSON body %r", failure, response.text)
        raise GatewayError(failure) from exc
    if not isinstance(payload, dict):
        logger.error("%s: unexpected body %r", failure, payload)
        raise GatewayError(failure)
    return payload


class SyncPaymentsClient:
    """
    Thin wrapper around the three gateway endpoints the checkout needs.
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        *,
        base_url: str = config.SYNCPAYMENTS_BASE_URL,
        http: Optional[httpx.Client] = None,
        timeout: float = config.SYNCPAYMENTS_TIMEOUT,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.Client(timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self.http.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Gateway %s %s failed: %s", method, path, exc)
            raise GatewayError("Gateway de pagamento indisponível") from exc

    def authenticate(self) -> str:
        if not self.client_id or not self.client_secret:
            logger.error("Missing SyncPayments credentials")
            raise ConfigurationError("Payment service not configured")

        logger.info("Authenticating with SyncPayments")
        response = self._request(
            "POST",
            AUTH_PATH,
            json={"client_id": self.client_id, "client_secret": self.client_secret},
        )
        if response.is_error:
            logger.error("Auth failed (%s): %s", response.status_code, response.text)
            raise AuthError("Falha na autenticação com gateway de pagamento")

        try:
            token = response.json().get("access_token")
        except (ValueError, AttributeError):
            token = None
        if not token:
            logger.error("Auth response without access_token: %s", response.text)
            raise AuthError("Falha na autenticação com gateway de pagamento")
        return token

    def create_intent(self, amount) -> PaymentIntent:
        if amount is None or Decimal(str(amount)) < MIN_AMOUNT:
            raise ValidationError("Valor mínimo é R$ 1,00")
        amount = float(amount)

        token = self.authenticate()
        body = build_order_payload(amount)
        logger.info("Creating PIX payment for R$ %.2f (%s)", amount, body["customer"]["externaRef"])

        response = self._request(
            "POST",
            CREATE_PATH,
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.is_error:
            logger.error("Payment creation failed (%s): %s", response.status_code, response.text)
            raise GatewayError("Falha ao criar pagamento PIX")

        payload = _json(response, "Falha ao criar pagamento PIX")
        if not payload.get("paymentCode"):
            logger.error("Payment response without paymentCode: %s", payload)
            raise GatewayError("QR Code não gerado pela API")

        intent = PaymentIntent(
            transaction_id=str(payload.get("idTransaction") or ""),
            payment_code=payload["paymentCode"],
            amount=amount,
            payment_code_base64=payload.get("paymentCodeBase64"),
            status=payload.get("status_transaction"),
        )
        logger.info("PIX payment created: %s", intent.transaction_id)
        return intent

    def check_status(self, transaction_id: str) -> PaymentStatus:
        if not transaction_id:
            raise ValidationError("Transaction ID is required")
        if transaction_id in (".", ".."):
            raise ValidationError("Transaction ID inválido")

        token = self.authenticate()
        logger.info("Checking payment status for transaction %s", transaction_id)

        response = self._request(
            "GET",
            STATUS_PATH.format(transaction_id=quote(transaction_id, safe="")),
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.is_error:
            logger.error("Status check failed (%s): %s", response.status_code, response.text)
            raise GatewayError("Falha ao verificar status do pagamento")

        status = PaymentStatus.from_response(
            transaction_id, _json(response, "Falha ao verificar status do pagamento")
        )
        logger.info("Transaction %s status: %s", transaction_id, status.status)
        return status


@lru_cache(maxsize=None)
def get_gateway() -> SyncPaymentsClient:
    """Process-wide client; its httpx connection pool is shared by all checkouts."""
    return SyncPaymentsClient(config.SYNCPAYMENTS_CLIENT_ID, config.SYNCPAYMENTS_CLIENT_SECRET)
