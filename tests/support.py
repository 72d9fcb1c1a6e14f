from decimal import Decimal
from types import SimpleNamespace

from app.models.enums import ShipmentStatus


def make_shipment(shipment_id="ship_1", status=ShipmentStatus.ARRIVED_PTA, quantity=Decimal("100")):
    return SimpleNamespace(
        id=shipment_id,
        supplier="Acme Foods",
        order_ref=f"PO-{shipment_id}",
        product_name="Frozen peas",
        quantity=quantity,
        week_number=12,
        final_pod="DBN",
        receiving_warehouse="PTA",
        forwarding_agent=None,
        vessel_name=None,
        incoterm="FOB",
        notes=None,
        latest_status=status,
        unloading_start_date=None,
        unloading_completed_date=None,
        inspection_date=None,
        inspection_status=None,
        inspection_notes=None,
        inspected_by=None,
        receiving_date=None,
        receiving_status=None,
        receiving_notes=None,
        received_by=None,
        received_quantity=None,
        discrepancies=[],
        rejection_date=None,
        rejection_reason=None,
        rejected_by=None,
        created_at=None,
        updated_at=None,
    )


class FakeSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0
        self.flushes = 0

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

    async def flush(self):
        self.flushes += 1
