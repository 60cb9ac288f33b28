"""Request proxy invoices from an lnproxy relay, parse invoices and validate the result."""

__version__ = "0.1.0"

__all__ = ["client", "invoice", "logger"]