# Overview: Wiring for the stateful sale/stock services.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .inventory_service import StockLedger
from .invoice_service import InvoiceCoordinator
from .numbering_service import InvoiceNumbering
from .pricing_service import PricingResolver

EXTENSION_KEY = "retailpos.services"


@dataclass(frozen=True)
class Services:
    pricing: PricingResolver
    ledger: StockLedger
    numbering: InvoiceNumbering
    invoices: InvoiceCoordinator


def build_services(session, config) -> Services:
    """Construct the sale pipeline once per app around the scoped session."""
    lock_timeout = float(config.get("LOCK_TIMEOUT_SECONDS", 5))
    pricing = PricingResolver()
    ledger = StockLedger(session, pricing, lock_timeout_seconds=lock_timeout)
    numbering = InvoiceNumbering(session)
    invoices = InvoiceCoordinator(session, ledger, pricing, numbering, lock_timeout_seconds=lock_timeout)
    return Services(pricing=pricing, ledger=ledger, numbering=numbering, invoices=invoices)


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
