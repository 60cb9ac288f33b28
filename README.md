# lnproxy-client

A small Python library for talking to lnproxy relays. A relay wraps a Lightning
invoice in a proxy invoice so that the payer cannot see the final destination.
This package sends that request over HTTP and checks that the invoice it gets
back can be trusted. It uses only the standard library.

## Installation

```
pip install .
```

To run the tests, install the test extra:

```
pip install ".[test]"
pytest
```

## Requesting a proxy invoice

```python
from lnproxy_client.client import LNProxy, validate_proxy_invoice

relay = LNProxy("https://relay.example.com/spec", base_msat=1000, ppm=500)
relay.timeout = 30  # seconds; None (the default) waits indefinitely

invoice = "lnbc15u1p3xnhl2pp5..."  # a complete invoice string
routing_msat = 1500

proxy_invoice = relay.request_proxy(invoice, routing_msat)
validate_proxy_invoice(invoice, proxy_invoice, routing_msat)
```

`request_proxy` POSTs `{"invoice": ..., "routing_msat": "<decimal>"}` as JSON to
the relay URL and returns the `proxy_invoice` field of the reply.

- If the relay answers with a status other than 200, `LNProxyError` is raised and
  the relay's `reason` is included in the message. A body that is not a JSON
  object also gives `LNProxyError`, reporting a malformed response.
- If a 200 reply cannot be decoded, `LNProxyError` is raised as well.
- Connection failures are raised as the underlying `urllib.error.URLError` or
  `OSError`.
- A `routing_msat` that is negative or above 2^64 − 1 raises `ValueError`.

## Validating a proxy invoice

`validate_proxy_invoice(invoice, proxy_invoice, routing_msat)` returns `True`
when the proxy invoice:

- carries the same payment hash as the original (`PaymentHashMismatch` if not),
- carries the same description, or the same description hash, of the same kind
  (`DescriptionMismatch`),
- asks for exactly the original amount plus the routing budget
  (`CustomRoutingBudgetMismatch`),
- has a different signature from the original (`DestinationNotProxied`).

If the proxy invoice cannot be parsed, `InvalidProxyInvoice` is raised; if the
original cannot be parsed, a plain `ProxyValidationError` is raised. All of these
derive from `ProxyValidationError`, itself a `ValueError`.

## Parsing invoices

```python
from lnproxy_client.invoice import parse_invoice

parts = parse_invoice(invoice)   # str or bytes
parts.amount_msat       # e.g. 250000000 for an "lnbc2500u" invoice; 0 if none
parts.payment_hash      # bech32 characters of the payment hash field
parts.description       # description, or its hash, as bech32 characters
parts.description_hash  # True if the description is a hash
parts.signature         # bech32 characters of the signature
```

`InvoiceParts` is a frozen dataclass. The parser lowercases the input and
accepts only mainnet (`lnbc`) bech32 invoices of at least 110 characters;
anything else raises `InvalidInvoiceError` (a `ValueError`).

## Logging

The package writes plain log lines of the form
`2024-01-01 12:00:00.000 [DEBUG] [Component] message`. The shared logger from
`default_logger()` writes to standard error at debug level.

```python
import io
from lnproxy_client.logger import Logger, LogLevel, set_global_level, set_global_output

set_global_level(LogLevel.WARN)
set_global_output(io.StringIO())

buffer = io.StringIO()
relay = relay.with_logger(Logger(LogLevel.DEBUG, buffer))
```

`LogLevel` runs `ERROR`, `WARN`, `INFO`, `DEBUG`; a logger writes messages at or
above its `level`. `Logger.with_prefix` and `Logger.with_component` return new
loggers that add a prefix or a `[component]` tag to every line. The module-level
functions `debug`, `info`, `warn` and `error` log through the shared logger.
Messages use `%`-style formatting with the extra arguments.

## What this package does not do

- There is no command-line tool; it is a library only.
- `LNProxy.base_msat` and `LNProxy.ppm` are stored on the client but not sent
  to the relay or used in any calculation.
- Invoices are not fully decoded: the bech32 checksum is not verified, field
  data is kept as bech32 characters rather than bytes, and signatures are only
  compared, never checked against a node key.