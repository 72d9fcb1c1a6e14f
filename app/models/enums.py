from __future__ import annotations

from enum import Enum


class ShipmentStatus(str, Enum):
    PLANNED_AIRFREIGHT = "planned_airfreight"
    PLANNED_SEAFREIGHT = "planned_seafreight"
    IN_TRANSIT_AIRFREIGHT = "in_transit_airfreight"
    IN_TRANSIT_ROADWAY = "in_transit_roadway"
    IN_TRANSIT_SEAWAY = "in_transit_seaway"
    MOORED = "moored"
    BERTH_WORKING = "berth_working"
    BERTH_COMPLETE = "berth_complete"
    ARRIVED_PTA = "arrived_pta"
    ARRIVED_KLM = "arrived_klm"
    ARRIVED_OFFSITE = "arrived_offsite"
    DELAYED = "delayed"
    CANCELLED = "cancelled"
    # post-arrival
    UNLOADING = "unloading"
    INSPECTION_PENDING = "inspection_pending"
    INSPECTING = "inspecting"
    INSPECTION_FAILED = "inspection_failed"
    INSPECTION_PASSED = "inspection_passed"
    RECEIVING = "receiving"
    RECEIVED = "received"
    STORED = "stored"
    REJECTED = "rejected"


ARRIVED_STATUSES = frozenset(
    {ShipmentStatus.ARRIVED_PTA, ShipmentStatus.ARRIVED_KLM, ShipmentStatus.ARRIVED_OFFSITE}
)

IN_TRANSIT_STATUSES = frozenset(
    {
        ShipmentStatus.IN_TRANSIT_AIRFREIGHT,
        ShipmentStatus.IN_TRANSIT_ROADWAY,
        ShipmentStatus.IN_TRANSIT_SEAWAY,
    }
)

PRE_ARRIVAL_STATUSES = frozenset(
    {
        ShipmentStatus.PLANNED_AIRFREIGHT,
        ShipmentStatus.PLANNED_SEAFREIGHT,
        ShipmentStatus.MOORED,
        ShipmentStatus.BERTH_WORKING,
        ShipmentStatus.BERTH_COMPLETE,
        ShipmentStatus.DELAYED,
        ShipmentStatus.CANCELLED,
    }
    | IN_TRANSIT_STATUSES
)

POST_ARRIVAL_STATUSES = ARRIVED_STATUSES | frozenset(
    {
        ShipmentStatus.UNLOADING,
        ShipmentStatus.INSPECTION_PENDING,
        ShipmentStatus.INSPECTING,
        ShipmentStatus.INSPECTION_FAILED,
        ShipmentStatus.INSPECTION_PASSED,
        ShipmentStatus.RECEIVING,
        ShipmentStatus.RECEIVED,
    }
)


class InspectionStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"


class ReceivingStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PARTIAL = "partial"
    COMPLETED = "completed"
    DISCREPANCY = "discrepancy"


class CostEstimateStatus(str, Enum):
    DRAFT = "draft"
    FINAL = "final"
    ARCHIVED = "archived"
