"""
Checkout lifecycle for a single PIX purchase.

    IDLE -> GENERATING -> READY -> VERIFYING -> UNLOCKED
                 |                    |
                 +------> FAILED <----+

Every transition is driven by the buyer (open, retry, "I paid", close);
nothing polls and nothing is persisted.
"""

from __future__ import annotations

import enum
import logging
import threading
import uuid
from collections import OrderedDict
from typing import Any, Dict, Optional

from storefront import config
from storefront.errors import GatewayError, InvalidTransition, ValidationError
from storefront.gateway import PaymentIntent

logger = logging.getLogger(__name__)

NOT_PAID_NOTICE = "Pagamento ainda não confirmado. Tente novamente em alguns instantes."
UNEXPECTED_ERROR = "Erro inesperado no pagamento. Tente novamente."


class CheckoutState(str, enum.Enum):
    IDLE = "idle"
    GENERATING = "generating"
    READY = "ready"
    VERIFYING = "verifying"
    UNLOCKED = "unlocked"
    FAILED = "failed"


class CheckoutSession:

    def __init__(self, gateway, amount: float, delivery_link: Optional[str]):
        self.gateway = gateway
        self.amount = amount
        self.delivery_link = delivery_link
        self.state = CheckoutState.IDLE
        self.intent: Optional[PaymentIntent] = None
        self.error: Optional[str] = None
        self.notice: Optional[str] = None
        self._failed_from: Optional[CheckoutState] = None
        # bumped on close(); results from an older attempt are dropped
        self._attempt = 0

    def _require(self, *states: CheckoutState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(f"Ação inválida no estado '{self.state.value}' (esperado: {allowed})")

    def _fail(self, step: CheckoutState, message: str) -> None:
        self.state = CheckoutState.FAILED
        self._failed_from = step
        self.error = message

    def open(self) -> "CheckoutSession":
        self._require(CheckoutState.IDLE)
        self._generate()
        return self

    def retry(self) -> "CheckoutSession":
        self._require(CheckoutState.FAILED)
        if self._failed_from is CheckoutState.VERIFYING and self.intent is not None:
            self._verify()
        else:
            self._generate()
        return self

    def confirm_paid(self) -> "CheckoutSession":
        self._require(CheckoutState.READY)
        self._verify()
        return self

    def close(self) -> "CheckoutSession":
        self._attempt += 1
        self.state = CheckoutState.IDLE
        self.intent = None
        self.error = None
        self.notice = None
        self._failed_from = None
        return self

    def _generate(self) -> None:
        attempt = self._attempt
        self.state = CheckoutState.GENERATING
        self.intent = None
        self.error = None
        self.notice = None
        try:
            intent = self.gateway.create_intent(self.amount)
        except (ValidationError, GatewayError) as exc:
            if attempt == self._attempt:
                logger.warning("Checkout payment generation failed: %s", exc.message)
                self._fail(CheckoutState.GENERATING, exc.message)
            return
        except Exception:
            # never leave the session parked in GENERATING
            if attempt == self._attempt:
                self._fail(CheckoutState.GENERATING, UNEXPECTED_ERROR)
            raise
        if attempt != self._attempt:
            logger.info("Discarding intent %s for a closed checkout", intent.transaction_id)
            return
        self.intent = intent
        self.state = CheckoutState.READY

    def _verify(self) -> None:
        attempt = self._attempt
        self.state = CheckoutState.VERIFYING
        self.error = None
        self.notice = None
        try:
            status = self.gateway.check_status(self.intent.transaction_id)
        except (ValidationError, GatewayError) as exc:
            if attempt == self._attempt:
                logger.warning("Checkout verification failed: %s", exc.message)
                self._fail(CheckoutState.VERIFYING, exc.message)
            return
        except Exception:
            if attempt == self._attempt:
                self._fail(CheckoutState.VERIFYING, UNEXPECTED_ERROR)
            raise
        if attempt != self._attempt:
            return
        if status.is_paid:
            logger.info("Transaction %s paid, unlocking delivery", status.transaction_id)
            self.state = CheckoutState.UNLOCKED
        else:
            self.state = CheckoutState.READY
            self.notice = NOT_PAID_NOTICE

    def snapshot(self) -> Dict[str, Any]:
        view: Dict[str, Any] = {
            "state": self.state.value,
            "amount": self.amount,
            "error": self.error,
            "notice": self.notice,
            "payment": None,
        }
        if self.intent is not None:
            view["payment"] = {
                "transactionId": self.intent.transaction_id,
                "paymentCode": self.intent.payment_code,
                "paymentCodeBase64": self.intent.payment_code_base64,
            }
        if self.state is CheckoutState.UNLOCKED:
            view["delivery_link"] = self.delivery_link
        return view


class CheckoutRegistry:
    """In-memory checkouts keyed by an opaque id; lost on restart.

    Holds at most ``max_sessions`` checkouts; opening one more evicts the
    oldest.
    """

    def __init__(self, max_sessions: int = config.CHECKOUT_MAX_SESSIONS):
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, CheckoutSession]" = OrderedDict()
        self._lock = threading.Lock()

    def start(self, gateway, amount: float, delivery_link: Optional[str]):
        checkout_id = uuid.uuid4().hex
        session = CheckoutSession(gateway, amount, delivery_link)
        with self._lock:
            self._sessions[checkout_id] = session
            while len(self._sessions) > self.max_sessions:
                evicted_id, evicted = self._sessions.popitem(last=False)
                evicted.close()
                logger.info("Evicted checkout %s (%s open)", evicted_id, self.max_sessions)
        try:
            session.open()
        except Exception:
            with self._lock:
                self._sessions.pop(checkout_id, None)
            raise
        return checkout_id, session

    def get(self, checkout_id: str) -> CheckoutSession:
        with self._lock:
            session = self._sessions.get(checkout_id)
        if session is None:
            raise LookupError(checkout_id)
        return session

    def close(self, checkout_id: str) -> CheckoutSession:
        with self._lock:
            session = self._sessions.pop(checkout_id, None)
        if session is None:
            raise LookupError(checkout_id)
        return session.close()

    def __len__(self):
        return len(self._sessions)


registry = CheckoutRegistry()
