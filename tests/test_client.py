import io
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from lnproxy_client.client import (
    CustomRoutingBudgetMismatch,
    DescriptionMismatch,
    DestinationNotProxied,
    InvalidProxyInvoice,
    LNProxy,
    LNProxyError,
    PaymentHashMismatch,
    ProxyValidationError,
    validate_proxy_invoice,
)
from lnproxy_client.invoice import parse_invoice
from lnproxy_client.logger import Logger, LogLevel

INVOICE_NO_AMOUNT = (
    "lnbc1pvjluezsp5zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zygspp5qqqsyqcyq5rqwzqfqqqsyqcyq5rqwzqfqqqsyqcyq5rqwzqfqypqdpl2pkx2ctnv5sxxmmwwd5kgetjypeh2ursdae8g6twvus8g6rfwvs8qun0dfjkxaq9qrsgq357wnc5r2ueh7ck6q93dj32dlqnls087fxdwk8qakdyafkq3yap9us6v52vjjsrvywa6rt52cm9r9zqt8r2t7mlcwspyetp5h2tztugp9lfyql"
)
INVOICE_2500U = (
    "lnbc2500u1pvjluezsp5zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zyg3zygspp5qqqsyqcyq5rqwzqfqqqsyqcyq5rqwzqfqqqsyqcyq5rqwzqfqypqdq5xysxxatsyp3k7enxv4jsxqzpu9qrsgquk0rl77nj30yxdy8j9vdx85fkpmdla2087ne0xh8nhedh8w27kyke0lp53ut353s06fv3qfegext0eh0ymjpf39tuven09sam30g4vgpfna3rh"
)
INVOICE_15U = (
    "lnbc15u1p3xnhl2pp5jptserfk3zk4qy42tlucycrfwxhydvlemu9pqr93tuzlv9cc7g3sdqsvfhkcap3xyhx7un8cqzpgxqzjcsp5f8c52y2stc300gl6s4xswtjpc37hrnnr3c9wvtgjfuvqmpm35evq9qyyssqy4lgd8tj637qcjp05rdpxxykjenthxftej7a2zzmwrmrl70fyj9hvj0rewhzj7jfyuwkwcg9g2jpwtk3wkjtwnkdks84hsnu8xps5vsq4gj5hs"
)

# Same payment hash and description, 0.1 mBTC more, re-signed by someone else.
PROXY_2501U = "lnbc2501u" + INVOICE_2500U[9:-110] + "q" * 110
PROXY_2501U_SAME_SIGNATURE = "lnbc2501u" + INVOICE_2500U[9:]


class _Handler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        self.server.requests.append(
            {
                "method": self.command,
                "content_type": self.headers.get("Content-Type"),
                "body": body,
            }
        )
        status, payload = self.server.reply
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def server():
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    httpd.requests = []
    httpd.reply = (200, b"")
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield httpd
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join()


def _client(server, log_buffer):
    host, port = server.server_address
    logger = Logger(LogLevel.DEBUG, log_buffer)
    return LNProxy(f"http://{host}:{port}/", 1000, 500).with_logger(logger)


def test_request_proxy(server):
    server.reply = (200, json.dumps({"proxy_invoice": "proxy-test-invoice"}).encode() + b"\n")
    log_buffer = io.StringIO()
    client = _client(server, log_buffer)

    assert client.request_proxy("test-invoice", 1500) == "proxy-test-invoice"

    assert len(server.requests) == 1
    request = server.requests[0]
    assert request["method"] == "POST"
    assert request["content_type"] == "application/json"
    assert json.loads(request["body"]) == {"invoice": "test-invoice", "routing_msat": "1500"}

    output = log_buffer.getvalue()
    assert "Requesting proxy invoice" in output
    assert "Successfully received proxy invoice" in output
    assert "[LNProxy]" in output


def test_request_proxy_error(server):
    server.reply = (400, json.dumps({"reason": "Invalid invoice"}).encode() + b"\n")
    log_buffer = io.StringIO()
    client = _client(server, log_buffer)

    with pytest.raises(LNProxyError) as excinfo:
        client.request_proxy("invalid-invoice", 1500)

    assert "Invalid invoice" in str(excinfo.value)
    assert "lnproxy error" in str(excinfo.value)
    output = log_buffer.getvalue()
    assert "LNProxy error: Invalid invoice" in output
    assert "Received non-OK status code: 400" in output


def test_request_proxy_malformed_error_body(server):
    server.reply = (500, b"internal failure")
    log_buffer = io.StringIO()
    client = _client(server, log_buffer)

    with pytest.raises(LNProxyError, match="malformed lnproxy response: internal failure"):
        client.request_proxy("test-invoice", 10)
    assert "Malformed lnproxy response" in log_buffer.getvalue()


def test_request_proxy_empty_error_body_has_empty_reason(server):
    server.reply = (503, b"")
    client = _client(server, io.StringIO())

    with pytest.raises(LNProxyError) as excinfo:
        client.request_proxy("test-invoice", 10)
    assert str(excinfo.value) == "lnproxy error\n"


def test_request_proxy_empty_success_body(server):
    server.reply = (200, b"")
    client = _client(server, io.StringIO())
    assert client.request_proxy("test-invoice", 0) == ""


def test_request_proxy_malformed_success_body(server):
    server.reply = (200, b"[1, 2]")
    client = _client(server, io.StringIO())
    with pytest.raises(LNProxyError):
        client.request_proxy("test-invoice", 0)


def test_request_proxy_rejects_negative_budget(server):
    client = _client(server, io.StringIO())
    with pytest.raises(ValueError):
        client.request_proxy("test-invoice", -1)
    assert server.requests == []


def test_client_settings_kept():
    client = LNProxy("http://localhost:1/api", 1000, 500)
    assert (client.url, client.base_msat, client.ppm) == ("http://localhost:1/api", 1000, 500)


def test_constructed_proxy_fixture_is_resigned():
    parts = parse_invoice(PROXY_2501U)
    assert parts.signature == "q" * 104
    assert parts.amount_msat == 250_100_000


def test_validate_accepts_faithful_proxy():
    assert validate_proxy_invoice(INVOICE_2500U, PROXY_2501U, 100_000) is True


def test_validate_routing_budget_mismatch():
    with pytest.raises(CustomRoutingBudgetMismatch, match="routing budget not respected"):
        validate_proxy_invoice(INVOICE_2500U, PROXY_2501U, 1)


def test_validate_destination_not_proxied():
    with pytest.raises(DestinationNotProxied, match="destination is not obscured"):
        validate_proxy_invoice(INVOICE_2500U, PROXY_2501U_SAME_SIGNATURE, 100_000)


def test_validate_payment_hash_mismatch():
    with pytest.raises(PaymentHashMismatch, match="payment hash does not match"):
        validate_proxy_invoice(INVOICE_2500U, INVOICE_15U, 0)


def test_validate_description_mismatch():
    with pytest.raises(DescriptionMismatch):
        validate_proxy_invoice(INVOICE_2500U, INVOICE_NO_AMOUNT, 0)


def test_validate_invalid_proxy_invoice():
    with pytest.raises(InvalidProxyInvoice, match="invalid proxy invoice"):
        validate_proxy_invoice(INVOICE_2500U, "not-an-invoice", 0)


def test_validate_invalid_original_invoice():
    with pytest.raises(ProxyValidationError, match="invalid original invoice"):
        validate_proxy_invoice("not-an-invoice", PROXY_2501U, 0)


@pytest.mark.parametrize(
    "proxy_invoice, routing_msat, error_type",
    [
        (INVOICE_15U, 0, PaymentHashMismatch),
        (INVOICE_NO_AMOUNT, 0, DescriptionMismatch),
        (PROXY_2501U, 1, CustomRoutingBudgetMismatch),
        (PROXY_2501U_SAME_SIGNATURE, 100_000, DestinationNotProxied),
        ("not-an-invoice", 0, InvalidProxyInvoice),
    ],
)
def test_validation_errors_share_base(proxy_invoice, routing_msat, error_type):
    with pytest.raises(ProxyValidationError) as excinfo:
        validate_proxy_invoice(INVOICE_2500U, proxy_invoice, routing_msat)
    assert type(excinfo.value) == error_type