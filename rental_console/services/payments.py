import logging
from typing import List

from .. import schemas
from ..errors import NotFoundError
from ..rules import TOTAL_TOLERANCE, InvoiceStatus, PaymentStatus
from .base import UNKNOWN_CUSTOMER, UNKNOWN_INVOICE, EntityService, person_name
from .invoices import InvoiceService

logger = logging.getLogger(__name__)

SETTLED_STATUSES = (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value)


def invoice_label(invoice_id: str) -> str:
    return f"INV-{invoice_id[:8]}" if invoice_id else UNKNOWN_INVOICE


class PaymentService(EntityService):
    collection = "payments"
    schema = schemas.Payment
    status_kind = "payment"

    def __init__(self, store, invoices: InvoiceService = None):
        super().__init__(store)
        self.invoices = invoices or InvoiceService(store)

    async def present(self, records: List[dict]) -> list:
        customers = await self.lookup("customers", (r.get("customerid") for r in records))
        payments = []
        for record in records:
            customer = customers.get(record.get("customerid"))
            payments.append(self.build(
                record,
                customer_name=person_name(customer) if customer else UNKNOWN_CUSTOMER,
                invoice_info=invoice_label(record.get("invoiceid"))
            ))
        return payments

    async def before_create(self, fields: dict) -> dict:
        if fields.get("invoice_id"):
            invoice = await self.invoices.fetch(fields["invoice_id"])
            fields.setdefault("customer_id", invoice.customer_id)
        return fields

    async def before_update(self, current, changes: dict) -> dict:
        if changes.get("invoice_id"):
            await self.invoices.fetch(changes["invoice_id"])
        return changes

    async def after_create(self, created):
        if created.status == PaymentStatus.COMPLETED.value and created.invoice_id:
            await self.settle_invoice(created.invoice_id)

    async def after_update(self, current, updated, changes: dict):
        if updated.status != PaymentStatus.COMPLETED.value or not updated.invoice_id:
            return
        if current.status != PaymentStatus.COMPLETED.value or "amount" in changes or "invoice_id" in changes:
            await self.settle_invoice(updated.invoice_id)

    async def settle_invoice(self, invoice_id: str) -> bool:
        """Mark the invoice paid once its completed payments cover the total.

        Never moves an invoice out of ``paid``. Returns True when the status changed.
        """
        try:
            invoice = await self.invoices.fetch(invoice_id)
        except NotFoundError:
            logger.warning(f"Invoice {invoice_id} not found, skipping payment roll-up")
            return False

        if invoice.status in SETTLED_STATUSES:
            return False

        with self.failure("load", invoice_id):
            completed = await self.store.get_all(
                self.collection,
                {"invoiceid": invoice_id, "status": PaymentStatus.COMPLETED.value}
            )
        paid = sum(float(payment["amount"] or 0) for payment in completed)

        if paid + TOTAL_TOLERANCE < invoice.total_amount:
            logger.info(f"Invoice {invoice_id} partially paid: {paid:.2f} of {invoice.total_amount:.2f}")
            return False

        await self.invoices.mark_paid(invoice_id)
        return True
