"""Extraction of the fields of a Lightning invoice needed to compare proxies."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .logger import default_logger

CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

_BECH32_INVOICE = re.compile(rf"lnbc(?:[0-9]+[pnum])?1[{CHARSET}]+")

_UINT64_MAX = 2**64 - 1

_UNIT_FACTORS = {
    "n": 100,
    "u": 100_000,
    "m": 100_000_000,
}


class InvalidInvoiceError(ValueError):
    """Raised when a string is not a recognisable mainnet invoice."""


@dataclass(frozen=True)
class InvoiceParts:
    """Fields of an invoice, kept in their bech32 character form."""

    amount_msat: int = 0
    payment_hash: str = ""
    description: str = ""
    description_hash: bool = False
    signature: str = ""


def parse_invoice(invoice: str | bytes) -> InvoiceParts:
    """Parse an invoice's amount, payment hash, description and signature."""
    logger = default_logger().with_component("InvoiceParser")
    if isinstance(invoice, (bytes, bytearray)):
        try:
            invoice = bytes(invoice).decode("ascii")
        except UnicodeDecodeError as exc:
            raise InvalidInvoiceError("invalid invoice") from exc
    logger.debug("Parsing invoice: %s", invoice[:40] + "...")

    invoice = invoice.lower()
    pos = invoice.rfind("1")
    if pos == -1 or not _BECH32_INVOICE.fullmatch(invoice):
        logger.error("Invalid invoice format")
        raise InvalidInvoiceError("invalid invoice")
    if len(invoice) < 110:
        logger.error("Invalid invoice format")
        raise InvalidInvoiceError("invalid invoice")

    amount_msat = 0
    if pos > 4:
        amount_str = invoice[4 : pos - 1]
        logger.debug("Parsing amount from: %s", amount_str)
        amount_msat = int(amount_str)
        if amount_msat > _UINT64_MAX:
            logger.error("Failed to parse amount: %s out of range", amount_str)
            raise InvalidInvoiceError(f"amount out of range: {amount_str}")
        unit = invoice[pos - 1]
        logger.debug("Amount unit: %s", unit)
        if unit == "p":
            amount_msat //= 10
        else:
            # Amounts are 64-bit unsigned and wrap on overflow.
            amount_msat = (amount_msat * _UNIT_FACTORS[unit]) & _UINT64_MAX
        logger.debug("Calculated amount: %d msat", amount_msat)

    payment_hash = ""
    description = ""
    description_hash = False

    logger.debug("Parsing invoice data fields")
    i = pos + 8
    while i < len(invoice):
        length = CHARSET.find(invoice[i + 1 : i + 2]) * 32 + CHARSET.find(invoice[i + 2 : i + 3])
        tag = invoice[i]
        logger.debug("Found field type %s with length %d", tag, length)
        data = invoice[i + 3 : i + 3 + length]
        if tag == "p":
            payment_hash = data
            logger.debug("Payment hash found (length: %d)", len(payment_hash))
        elif tag == "d":
            description_hash = False
            description = data
            logger.debug("Description found: %s", description)
        elif tag == "h":
            description_hash = True
            description = data
            logger.debug("Description hash found (length: %d)", len(description))
        i += 3 + length

    signature = invoice[len(invoice) - 110 : len(invoice) - 6]
    logger.debug("Signature extracted (length: %d)", len(signature))
    logger.debug("Invoice parsing complete")

    return InvoiceParts(
        amount_msat=amount_msat,
        payment_hash=payment_hash,
        description=description,
        description_hash=description_hash,
        signature=signature,
    )