from app.models.shipment import Shipment  # noqa: F401
from app.models.cost_estimate import ImportCostEstimate  # noqa: F401
from app.models.archive import ShipmentArchive  # noqa: F401
from app.models.exchange_rate import ExchangeRateCache  # noqa: F401
from app.models.enums import (  # noqa: F401
    CostEstimateStatus,
    InspectionStatus,
    ReceivingStatus,
    ShipmentStatus,
)
