"""
Export rows for CSV writers. Fixed field sets, values already formatted.
"""

import math
from typing import Iterable, List

from qcommerce.sim.domain.models import OptimizationIterationResult, Order

ORDER_FIELDS = (
    "OrderID",
    "TimePlaced",
    "StoreArrivalTime",
    "CustomerArrivalTime",
    "DeliveryTimeMinutes",
    "AssignedAgentID",
    "Status",
    "OrderLat",
    "OrderLng",
)

OPTIMIZATION_FIELDS = (
    "NumAgents",
    "AvgDeliveredOrders",
    "AvgDeliveryTimeMin",
    "PercentageMeetingSLA",
    "CompletionRatePercent",
    "AvgAgentUtilizationPercent",
    "AvgCostPerOrderINR",
    "AvgTravelDistanceKmPerRun",
)


def _fmt(value, digits: int = 1) -> str:
    if value is None:
        return "N/A"
    return f"{value:.{digits}f}"


def order_rows(orders: Iterable[Order]) -> List[dict]:
    return [
        {
            "OrderID": o.order_id,
            "TimePlaced": _fmt(o.time_placed),
            "StoreArrivalTime": _fmt(o.store_arrival_time),
            "CustomerArrivalTime": _fmt(o.customer_arrival_time),
            "DeliveryTimeMinutes": _fmt(o.delivery_time),
            "AssignedAgentID": o.assigned_agent_id or "N/A",
            "Status": o.status.value,
            "OrderLat": f"{o.lat:.6f}",
            "OrderLng": f"{o.lng:.6f}",
        }
        for o in orders
    ]


def optimization_rows(results: Iterable[OptimizationIterationResult]) -> List[dict]:
    return [
        {
            "NumAgents": r.num_agents,
            "AvgDeliveredOrders": _fmt(r.avg_delivered_orders),
            "AvgDeliveryTimeMin": _fmt(r.avg_delivery_time),
            "PercentageMeetingSLA": _fmt(r.percentage_meeting_sla),
            "CompletionRatePercent": _fmt(r.completion_rate),
            "AvgAgentUtilizationPercent": _fmt(r.avg_agent_utilization),
            "AvgCostPerOrderINR": _fmt(r.avg_cost_per_order, 2) if math.isfinite(r.avg_cost_per_order) else "N/A",
            "AvgTravelDistanceKmPerRun": _fmt(r.avg_travel_distance_km),
        }
        for r in results
    ]
