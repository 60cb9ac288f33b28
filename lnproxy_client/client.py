"""HTTP client for an lnproxy relay and validation of the invoices it returns."""

from __future__ import annotations

import json
import urllib.error
import urllib.request

from .invoice import InvalidInvoiceError, parse_invoice
from .logger import Logger, default_logger

_UINT64_MAX = 2**64 - 1


class LNProxyError(Exception):
    """Raised when the relay rejects a request or answers unintelligibly."""


class ProxyValidationError(ValueError):
    """Raised when a proxy invoice does not faithfully wrap the original."""


class PaymentHashMismatch(ProxyValidationError):
    """The proxy invoice pays to a different payment hash."""

    def __init__(self, message: str = "payment hash does not match"):
        super().__init__(message)


class DescriptionMismatch(ProxyValidationError):
    """The proxy invoice carries a different description."""

    def __init__(self, message: str = "description does match"):
        super().__init__(message)


class CustomRoutingBudgetMismatch(ProxyValidationError):
    """The proxy invoice amount is not the original plus the routing budget."""

    def __init__(self, message: str = "routing budget not respected"):
        super().__init__(message)


class DestinationNotProxied(ProxyValidationError):
    """The proxy invoice is signed by the original destination."""

    def __init__(self, message: str = "destination is not obscured"):
        super().__init__(message)


class InvalidProxyInvoice(ProxyValidationError):
    """The proxy invoice could not be parsed."""

    def __init__(self, message: str = "invalid proxy invoice"):
        super().__init__(message)


def _decode_object(raw: bytes) -> dict:
    """Decode the first JSON value of ``raw`` as an object; empty input gives {}."""
    text = raw.decode("utf-8").lstrip()
    if not text:
        return {}
    value, _ = json.JSONDecoder().raw_decode(text)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def _string_field(obj: dict, key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} is not a string")
    return value


class LNProxy:
    """Client that asks an lnproxy relay to wrap invoices."""

    def __init__(self, url: str, base_msat: int, ppm: int):
        self.url = str(url)
        self.base_msat = base_msat
        self.ppm = ppm
        self.timeout: float | None = None
        self._logger = default_logger().with_component("LNProxy")

    def with_logger(self, logger: Logger) -> LNProxy:
        """Use ``logger`` for this client's messages and return the client."""
        self._logger = logger.with_component("LNProxy")
        return self

    def _post(self, payload: bytes) -> tuple[int, bytes]:
        request = urllib.request.Request(
            self.url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return response.status, response.read()
        except urllib.error.HTTPError as exc:
            with exc:
                return exc.code, exc.read()

    def request_proxy(self, invoice: str, routing_msat: int) -> str:
        """Ask the relay for a proxy invoice with the given routing budget."""
        if not 0 <= routing_msat <= _UINT64_MAX:
            raise ValueError(f"routing_msat out of range: {routing_msat}")
        logger = self._logger
        logger.debug(
            "Requesting proxy invoice for %s with routing budget %d msat",
            invoice,
            routing_msat,
        )
        payload = json.dumps(
            {"invoice": invoice, "routing_msat": "%d" % routing_msat}
        ).encode("utf-8")

        logger.debug("Sending request to %s", self.url)
        try:
            status, body = self._post(payload)
        except (urllib.error.URLError, OSError) as exc:
            logger.error("HTTP request failed: %s", exc)
            raise

        if status != 200:
            logger.warn("Received non-OK status code: %d", status)
            try:
                reason = _string_field(_decode_object(body), "reason")
            except ValueError as exc:
                text = body.decode("utf-8", errors="replace")
                logger.error("Malformed lnproxy response: %s", text)
                raise LNProxyError(f"malformed lnproxy response: {text}") from exc
            logger.error("LNProxy error: %s", reason)
            raise LNProxyError(f"lnproxy error\n{reason}")

        try:
            proxy_invoice = _string_field(_decode_object(body), "proxy_invoice")
        except ValueError as exc:
            logger.error("Failed to decode successful response: %s", exc)
            raise LNProxyError(f"invalid lnproxy response: {exc}") from exc

        logger.debug("Successfully received proxy invoice: %s", proxy_invoice)
        return proxy_invoice


def validate_proxy_invoice(invoice: str, proxy_invoice: str, routing_msat: int) -> bool:
    """Check that ``proxy_invoice`` wraps ``invoice`` with exactly ``routing_msat`` added.

    Returns True when valid; raises a ProxyValidationError subclass otherwise.
    """
    logger = default_logger().with_component("Validator")
    logger.debug("Validating proxy invoice against original invoice")

    try:
        original = parse_invoice(invoice)
    except (InvalidInvoiceError, ValueError) as exc:
        logger.error("Failed to parse original invoice: %s", exc)
        raise ProxyValidationError("invalid original invoice") from exc

    try:
        proxy = parse_invoice(proxy_invoice)
    except (InvalidInvoiceError, ValueError) as exc:
        logger.error("Failed to parse proxy invoice: %s", exc)
        raise InvalidProxyInvoice() from exc

    logger.debug(
        "Original amount: %d msat, Proxy amount: %d msat",
        original.amount_msat,
        proxy.amount_msat,
    )

    if original.payment_hash != proxy.payment_hash:
        logger.error("Payment hash mismatch")
        raise PaymentHashMismatch()

    if original.description_hash != proxy.description_hash:
        logger.error("Description hash mismatch")
        raise DescriptionMismatch()

    if original.description != proxy.description:
        logger.error("Description mismatch")
        raise DescriptionMismatch()

    expected = (original.amount_msat + routing_msat) & _UINT64_MAX
    if expected != proxy.amount_msat:
        logger.error(
            "Routing budget mismatch: expected %d, got %d", expected, proxy.amount_msat
        )
        raise CustomRoutingBudgetMismatch()

    if original.signature == proxy.signature:
        logger.error("Destination not proxied (signatures match)")
        raise DestinationNotProxied()

    logger.debug("Proxy invoice validation successful")
    return True