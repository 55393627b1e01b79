"""
Priority scoring and surge detection for incoming emergencies.

Both entry points are pure: they read their arguments (and, for surge
detection, the clock) and return new value records.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from emergency_dispatch.config import SURGE_RADIUS_KM, SURGE_THRESHOLD, SURGE_TIME_WINDOW_MINUTES
from emergency_dispatch.geo import flat_distance_km
from emergency_dispatch.log import get_logger
from emergency_dispatch.models import (
    Coordinates,
    EmergencyType,
    IncidentInput,
    PriorityLabel,
    PriorityResult,
    PriorityStyle,
    SurgeResult,
    enum_value,
)

logger = get_logger(__name__)


TYPE_SCORES: Dict[str, int] = {
    EmergencyType.CARDIAC_ARREST.value: 50,
    EmergencyType.SEVERE_TRAUMA.value: 40,
    EmergencyType.ACCIDENT.value: 30,
    EmergencyType.FIRE.value: 25,
    EmergencyType.OTHER.value: 10,
}
DEFAULT_TYPE_SCORE = 10

ELDERLY_BONUS = 10
LONG_DISTANCE_KM = 5
LONG_DISTANCE_BONUS = 10

# Inclusive lower bounds, checked top-down.
LABEL_THRESHOLDS = (
    (80, PriorityLabel.CRITICAL),
    (60, PriorityLabel.HIGH),
    (40, PriorityLabel.MEDIUM),
)

PRIORITY_STYLES: Dict[str, PriorityStyle] = {
    PriorityLabel.CRITICAL.value: PriorityStyle("#ff3b30", "rgba(255,59,48,0.15)", "#ff3b30"),
    PriorityLabel.HIGH.value: PriorityStyle("#ff9500", "rgba(255,149,0,0.15)", "#ff9500"),
    PriorityLabel.MEDIUM.value: PriorityStyle("#ffcc00", "rgba(255,204,0,0.15)", "#ffcc00"),
    PriorityLabel.LOW.value: PriorityStyle("#34c759", "rgba(52,199,89,0.15)", "#34c759"),
}


def base_score(incident_type: Union[EmergencyType, str]) -> int:
    return TYPE_SCORES.get(enum_value(incident_type), DEFAULT_TYPE_SCORE)


def label_for_score(score: float) -> PriorityLabel:
    for threshold, label in LABEL_THRESHOLDS:
        if score >= threshold:
            return label
    return PriorityLabel.LOW


def get_priority_style(label: Union[PriorityLabel, str]) -> PriorityStyle:
    """Presentation triple for a label. Raises ValueError for unknown labels."""
    return PRIORITY_STYLES[PriorityLabel(label).value]


def calculate_priority(incident: IncidentInput) -> PriorityResult:
    """
    Score a single incident:
    - base weight by incident type (unknown types score as ``other``)
    - +10 when the patient is elderly
    - +10 when the nearest responder is more than 5 km away
    """
    score = base_score(incident.type)
    if incident.is_elderly:
        score += ELDERLY_BONUS
    if incident.distance_km > LONG_DISTANCE_KM:
        score += LONG_DISTANCE_BONUS

    label = label_for_score(score)
    style = get_priority_style(label)
    return PriorityResult(
        score=score,
        label=label,
        color=style.color,
        background_color=style.background_color,
        border_color=style.border_color,
    )


def _read(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO strings; naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        ts = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            dt = datetime.fromisoformat(ts)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def recent_incidents(incidents: Iterable[Any], time_window_minutes: float, now: datetime) -> List[Any]:
    """
    Records created less than ``time_window_minutes`` before ``now``.

    Only the upper bound on age is checked, so records stamped in the future
    are kept. Records without a readable ``created_at`` are dropped.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window = timedelta(minutes=time_window_minutes)

    recent = []
    for record in incidents:
        created_at = _parse_timestamp(_read(record, "created_at"))
        if created_at is None:
            logger.debug("Skipping record with unreadable created_at: %r", record)
            continue
        if now - created_at < window:
            recent.append(record)
    return recent


def detect_surge(
    incidents: Iterable[Any],
    radius_km: float = SURGE_RADIUS_KM,
    time_window_minutes: float = SURGE_TIME_WINDOW_MINUTES,
    threshold_count: int = SURGE_THRESHOLD,
    now: Optional[datetime] = None,
) -> SurgeResult:
    """
    Look for a cluster of at least ``threshold_count`` recent incidents within
    ``radius_km`` of one of them.

    Records are mappings or objects exposing ``lat``, ``lng`` and
    ``created_at``. Candidate centers are tried in input order and the first
    one that qualifies is reported, even if a later center has a larger
    neighbourhood.
    """
    now = now or datetime.now(timezone.utc)
    recent = recent_incidents(incidents, time_window_minutes, now)

    if len(recent) < threshold_count:
        return SurgeResult(is_surge=False, zone=None, count=len(recent))

    for center in recent:
        center_lat, center_lng = _read(center, "lat"), _read(center, "lng")
        nearby = [
            record
            for record in recent
            if flat_distance_km(center_lat, center_lng, _read(record, "lat"), _read(record, "lng")) <= radius_km
        ]
        if len(nearby) >= threshold_count:
            logger.info(
                "Surge detected: %d incidents within %.1f km of (%.4f, %.4f)",
                len(nearby),
                radius_km,
                center_lat,
                center_lng,
            )
            return SurgeResult(is_surge=True, zone=Coordinates(center_lat, center_lng), count=len(nearby))

    return SurgeResult(is_surge=False, zone=None, count=len(recent))
