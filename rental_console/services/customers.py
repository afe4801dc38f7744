import logging
from typing import List, Tuple

from .. import schemas
from ..errors import DeleteFailed, NotFoundError, StoreError
from .base import EntityService, person_name

logger = logging.getLogger(__name__)


class CustomerService(EntityService):
    collection = "customers"
    schema = schemas.Customer

    async def present(self, records: List[dict]) -> list:
        return [self.build(record, full_name=person_name(record)) for record in records]

    async def deletion_plan(self, customer_id: str) -> List[Tuple[str, str]]:
        """Everything that has to go before the customer, deepest first.

        Follows reservations -> rentals -> invoices -> payments, and also picks
        up rentals, invoices and payments that point at the customer directly.
        """
        with self.failure("load", customer_id):
            reservations = await self.store.get_all("reservations", {"customerid": customer_id})

            rentals = {}
            for rental in await self.store.get_all("rentals", {"customerid": customer_id}):
                rentals[rental["id"]] = rental
            for reservation in reservations:
                for rental in await self.store.get_all("rentals", {"reservationid": reservation["id"]}):
                    rentals[rental["id"]] = rental

            invoices = {}
            for invoice in await self.store.get_all("invoices", {"customerid": customer_id}):
                invoices[invoice["id"]] = invoice
            for rental_id in rentals:
                for invoice in await self.store.get_all("invoices", {"rentalid": rental_id}):
                    invoices[invoice["id"]] = invoice

            payments = {}
            for payment in await self.store.get_all("payments", {"customerid": customer_id}):
                payments[payment["id"]] = payment
            for invoice_id in invoices:
                for payment in await self.store.get_all("payments", {"invoiceid": invoice_id}):
                    payments[payment["id"]] = payment

        plan = [("payments", payment_id) for payment_id in payments]
        plan += [("invoices", invoice_id) for invoice_id in invoices]
        plan += [("rentals", rental_id) for rental_id in rentals]
        plan += [("reservations", reservation["id"]) for reservation in reservations]
        plan.append((self.collection, customer_id))
        return plan

    async def delete(self, customer_id: str) -> List[Tuple[str, str]]:
        """Delete the customer and every dependent record.

        Not atomic: a failure stops the walk and raises ``DeleteFailed`` with
        what was already removed. Calling again picks up the remainder.
        """
        await self.fetch(customer_id)
        plan = await self.deletion_plan(customer_id)

        deleted = []
        for collection, record_id in plan:
            try:
                await self.store.delete(collection, record_id)
            except NotFoundError:
                logger.info(f"{collection} {record_id} already gone, continuing")
                continue
            except StoreError as e:
                logger.error(f"Cascade delete of customer {customer_id} stopped at {collection} {record_id}: {e}")
                raise DeleteFailed(collection, record_id, e, deleted) from e
            deleted.append((collection, record_id))

        logger.info(f"Customer {customer_id} deleted with {len(deleted) - 1} dependent record(s)")
        return deleted
