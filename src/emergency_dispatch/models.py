from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_value(value):
    """Plain string for an enum member; strings pass through."""
    return value.value if isinstance(value, Enum) else value


class EmergencyType(str, Enum):
    CARDIAC_ARREST = "cardiac_arrest"
    SEVERE_TRAUMA = "severe_trauma"
    ACCIDENT = "accident"
    FIRE = "fire"
    OTHER = "other"


class PriorityLabel(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class IncidentStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AmbulanceStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


ACTIVE_STATUSES = frozenset(
    {IncidentStatus.PENDING.value, IncidentStatus.ASSIGNED.value, IncidentStatus.IN_PROGRESS.value}
)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True)
class IncidentInput:
    """Triage facts about a single report at scoring time."""

    type: Union[EmergencyType, str]
    is_elderly: bool = False
    distance_km: float = 0.0


@dataclass(frozen=True)
class PriorityStyle:
    color: str
    background_color: str
    border_color: str


@dataclass(frozen=True)
class PriorityResult:
    score: int
    label: PriorityLabel
    color: str
    background_color: str
    border_color: str

    @property
    def style(self) -> PriorityStyle:
        return PriorityStyle(self.color, self.background_color, self.border_color)

    def as_dict(self) -> dict:
        return {
            "score": self.score,
            "label": self.label.value,
            "color": self.color,
            "background_color": self.background_color,
            "border_color": self.border_color,
        }


@dataclass(frozen=True)
class SurgeResult:
    is_surge: bool
    zone: Optional[Coordinates]
    count: int

    def as_dict(self) -> dict:
        zone = {"lat": self.zone.lat, "lng": self.zone.lng} if self.zone else None
        return {"is_surge": self.is_surge, "zone": zone, "count": self.count}


@dataclass(frozen=True)
class IncidentReport:
    incident_id: str
    type: Union[EmergencyType, str]
    lat: float
    lng: float
    is_elderly: bool = False
    description: str = ""
    reported_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class IncidentRecord:
    incident_id: str
    type: str
    lat: float
    lng: float
    is_elderly: bool
    priority_score: int
    priority_label: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    assigned_ambulance: Optional[str] = None
    assigned_hospital: Optional[str] = None
    description: str = ""

    @property
    def is_active(self) -> bool:
        return enum_value(self.status) in ACTIVE_STATUSES


@dataclass(frozen=True)
class Ambulance:
    ambulance_id: str
    vehicle_number: str
    lat: float
    lng: float
    status: str = AmbulanceStatus.AVAILABLE.value


@dataclass(frozen=True)
class Hospital:
    hospital_id: str
    name: str
    lat: float
    lng: float
    available_beds: int
    icu_available: int
    emergency_capacity: bool = True


@dataclass(frozen=True)
class SurgeEvent:
    zone: Coordinates
    radius_km: float
    case_count: int
    detected_at: datetime
    active: bool = True
    resolved_at: Optional[datetime] = None

    def resolve(self, at: Optional[datetime] = None) -> SurgeEvent:
        return replace(self, active=False, resolved_at=at or utcnow())


@dataclass(frozen=True)
class DispatchStats:
    active_cases: int
    available_ambulances: int
    hospitals_online: int
    pending: int
