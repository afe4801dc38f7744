import logging
from datetime import timedelta
from typing import List

from .. import rules, schemas
from ..rules import FEE_FIELDS, INVOICE_DUE_DAYS, InvoiceStatus
from .base import UNKNOWN_CUSTOMER, EntityService, person_name, vehicle_description

logger = logging.getLogger(__name__)


class InvoiceService(EntityService):
    collection = "invoices"
    schema = schemas.Invoice
    status_kind = "invoice"

    def __init__(self, store, clock=rules.utcnow):
        super().__init__(store)
        self.clock = clock

    async def present(self, records: List[dict]) -> list:
        customers = await self.lookup("customers", (r.get("customerid") for r in records))
        rentals = await self.lookup("rentals", (r.get("rentalid") for r in records))
        vehicles = await self.lookup("vehicles", (r.get("vehicleid") for r in rentals.values()))
        now = self.clock()

        invoices = []
        for record in records:
            customer = customers.get(record.get("customerid"))
            rental = rentals.get(record.get("rentalid"))
            vehicle = vehicles.get(rental.get("vehicleid")) if rental else None
            invoice = self.build(
                record,
                customer_name=person_name(customer) if customer else UNKNOWN_CUSTOMER,
                rental_info=vehicle_description(vehicle) if vehicle else "Unknown"
            )
            invoice.display_status = rules.invoice_display_status(invoice.status, invoice.due_date, now)
            invoices.append(invoice)
        return invoices

    async def before_create(self, fields: dict) -> dict:
        for field in FEE_FIELDS:
            fields.setdefault(field, 0.0)

        if fields.get("total_amount") is None:
            fields["total_amount"] = rules.invoice_total(fields)
        else:
            rules.check_invoice_total(fields, fields["total_amount"])

        fields.setdefault("invoice_date", self.clock())
        fields.setdefault("due_date", fields["invoice_date"] + timedelta(days=INVOICE_DUE_DAYS))
        return fields

    async def mark_paid(self, invoice_id: str):
        with self.failure("save", invoice_id):
            record = await self.store.update(
                self.collection, invoice_id, {"status": InvoiceStatus.PAID.value}
            )
        logger.info(f"Invoice {invoice_id} marked paid")
        return self.build(record)
