from __future__ import annotations

import math
from typing import Dict, Iterable

import pandas as pd

from emergency_dispatch.models import (
    EmergencyType,
    IncidentRecord,
    IncidentStatus,
    PriorityLabel,
    SurgeEvent,
    enum_value,
)

COLUMNS = ["incident_id", "type", "priority_label", "priority_score", "status", "created_at", "updated_at"]


def incidents_frame(incidents: Iterable[IncidentRecord]) -> pd.DataFrame:
    rows = [
        {
            "incident_id": i.incident_id,
            "type": enum_value(i.type),
            "priority_label": enum_value(i.priority_label),
            "priority_score": i.priority_score,
            "status": enum_value(i.status),
            "created_at": i.created_at,
            "updated_at": i.updated_at,
        }
        for i in incidents
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def _counts(df: pd.DataFrame, column: str, order: list[str]) -> Dict[str, int]:
    counts = df[column].value_counts().reindex(order, fill_value=0)
    return {name: int(value) for name, value in counts.items()}


def priority_distribution(incidents: Iterable[IncidentRecord]) -> Dict[str, int]:
    return _counts(incidents_frame(incidents), "priority_label", [label.value for label in PriorityLabel])


def type_distribution(incidents: Iterable[IncidentRecord]) -> Dict[str, int]:
    return _counts(incidents_frame(incidents), "type", [kind.value for kind in EmergencyType])


def average_response_minutes(incidents: Iterable[IncidentRecord]) -> int:
    """
    Mean minutes from creation to last update over completed incidents, 0 when none.

    Completed cases without ``updated_at`` are left out of the mean.
    """
    df = incidents_frame(incidents)
    completed = df[df["status"] == IncidentStatus.COMPLETED.value]
    if completed.empty:
        return 0

    created = pd.to_datetime(completed["created_at"], utc=True)
    updated = pd.to_datetime(completed["updated_at"], utc=True)
    minutes = (updated - created).dt.total_seconds().mean() / 60
    if pd.isna(minutes):
        return 0
    # Round half up.
    return int(math.floor(minutes + 0.5))


def overview(incidents: Iterable[IncidentRecord], surge_events: Iterable[SurgeEvent] = ()) -> dict:
    incidents = list(incidents)
    return {
        "total_cases": len(incidents),
        "priority_distribution": priority_distribution(incidents),
        "type_distribution": type_distribution(incidents),
        "average_response_minutes": average_response_minutes(incidents),
        "active_surges": sum(1 for event in surge_events if event.active),
    }
