"""
Back-office records: purchase invoices and tailoring measurements
CRUD-level; purchases reuse the invoice status rules
"""

from datetime import date
from typing import Callable, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from engine.status_machine import InvoiceStatusMachine
from models.errors import RecordNotFound, ValidationError
from models.invoice import InvoiceStatus
from models.records import Measurement, PurchaseInvoice
from storage.repository import InMemoryRepository, Repository
from utils.logging import logger


ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: Type[ModelT], payload: Mapping, prefix: str) -> ModelT:
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise ValidationError(f"{model.__name__} must be a JSON object")
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, prefix=prefix) from e


class RecordsService:
    """Purchases and measurements"""

    def __init__(
        self,
        purchases: Optional[Repository[PurchaseInvoice]] = None,
        measurements: Optional[Repository[Measurement]] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.clock = clock
        self.status_machine = InvoiceStatusMachine(clock=clock)
        self.purchases = purchases or InMemoryRepository(PurchaseInvoice, name="purchases")
        self.measurements = measurements or InMemoryRepository(Measurement, name="measurements")

    # Purchases

    def save_purchase(self, payload) -> PurchaseInvoice:
        purchase = _parse(PurchaseInvoice, payload, "purchase")
        existing = self.purchases.read(purchase.id) if purchase.id else None

        target = self.status_machine.derive(purchase.amount, purchase.amount_paid, purchase.due_date, self.clock())
        current = existing.status if existing else InvoiceStatus.UNPAID
        status = self.status_machine.transition(current, target)
        purchase = purchase.model_copy(update={"status": status})

        if existing is None:
            purchase_id = self.purchases.create(purchase, record_id=purchase.id)
        else:
            purchase_id = purchase.id
            if not self.purchases.update(purchase_id, purchase):
                raise RecordNotFound("Purchase invoice", purchase_id)

        logger.log_step("purchase_saved", {"purchase_id": purchase_id, "status": status.value})
        return self.purchases.read(purchase_id)

    def get_purchase(self, purchase_id: str) -> Optional[PurchaseInvoice]:
        return self.purchases.read(purchase_id)

    def list_purchases(self, status: Optional[InvoiceStatus] = None) -> List[PurchaseInvoice]:
        if status is None:
            return self.purchases.list()
        return self.purchases.list(lambda p: p.status == status)

    def delete_purchase(self, purchase_id: str) -> bool:
        return self.purchases.delete(purchase_id)

    # Measurements

    def save_measurement(self, payload) -> Measurement:
        measurement = _parse(Measurement, payload, "measurement")

        duplicate = self.measurements.list(
            lambda m: m.unique_id == measurement.unique_id and m.id != measurement.id
        )
        if duplicate:
            raise ValidationError(f"Measurement id '{measurement.unique_id}' is already used")

        if measurement.id and self.measurements.read(measurement.id) is not None:
            self.measurements.update(measurement.id, measurement)
            measurement_id = measurement.id
        else:
            measurement_id = self.measurements.create(measurement, record_id=measurement.id)

        logger.log_step("measurement_saved", {"measurement_id": measurement_id})
        return self.measurements.read(measurement_id)

    def list_measurements(self, customer_name: Optional[str] = None) -> List[Measurement]:
        if customer_name is None:
            return self.measurements.list()
        needle = customer_name.strip().lower()
        return self.measurements.list(lambda m: m.customer_name.strip().lower() == needle)

    def delete_measurement(self, measurement_id: str) -> bool:
        return self.measurements.delete(measurement_id)
