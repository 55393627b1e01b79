from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional

from emergency_dispatch.config import SURGE_RADIUS_KM, SURGE_THRESHOLD, SURGE_TIME_WINDOW_MINUTES
from emergency_dispatch.geo import haversine_km
from emergency_dispatch.log import get_logger
from emergency_dispatch.models import (
    Ambulance,
    AmbulanceStatus,
    DispatchStats,
    Hospital,
    IncidentInput,
    IncidentRecord,
    IncidentReport,
    IncidentStatus,
    PriorityResult,
    SurgeEvent,
    SurgeResult,
    enum_value,
    utcnow,
)
from emergency_dispatch.priority import calculate_priority, detect_surge

logger = get_logger(__name__)


class DispatchBoard:
    """In-memory view over the incidents, ambulances and hospitals a dispatcher sees."""

    def __init__(
        self,
        incidents: Iterable[IncidentRecord] = (),
        ambulances: Iterable[Ambulance] = (),
        hospitals: Iterable[Hospital] = (),
        radius_km: float = SURGE_RADIUS_KM,
        time_window_minutes: float = SURGE_TIME_WINDOW_MINUTES,
        threshold_count: int = SURGE_THRESHOLD,
    ) -> None:
        self.incidents = list(incidents)
        self.ambulances = list(ambulances)
        self.hospitals = list(hospitals)
        self.radius_km = radius_km
        self.time_window_minutes = time_window_minutes
        self.threshold_count = threshold_count

    def available_ambulances(self) -> List[Ambulance]:
        return [a for a in self.ambulances if enum_value(a.status) == AmbulanceStatus.AVAILABLE.value]

    def nearest_unit_km(self, lat: float, lng: float) -> float:
        """Distance to the closest available ambulance, 0 when none is available."""
        distances = [haversine_km(lat, lng, a.lat, a.lng) for a in self.available_ambulances()]
        return min(distances) if distances else 0.0

    def score_report(self, report: IncidentReport) -> PriorityResult:
        return calculate_priority(
            IncidentInput(
                type=report.type,
                is_elderly=report.is_elderly,
                distance_km=self.nearest_unit_km(report.lat, report.lng),
            )
        )

    def register(self, report: IncidentReport) -> IncidentRecord:
        priority = self.score_report(report)
        record = IncidentRecord(
            incident_id=report.incident_id,
            type=enum_value(report.type),
            lat=report.lat,
            lng=report.lng,
            is_elderly=report.is_elderly,
            priority_score=priority.score,
            priority_label=priority.label.value,
            status=IncidentStatus.PENDING.value,
            created_at=report.reported_at,
            description=report.description,
        )
        self.incidents.append(record)
        logger.info(
            "Registered %s (%s) with priority %s/%d",
            record.incident_id,
            record.type,
            record.priority_label,
            record.priority_score,
        )
        return record

    def _incident_index(self, incident_id: str) -> int:
        for index, incident in enumerate(self.incidents):
            if incident.incident_id == incident_id:
                return index
        raise KeyError(f"Incident not found: {incident_id}")

    def _ambulance_index(self, ambulance_id: str) -> int:
        for index, ambulance in enumerate(self.ambulances):
            if ambulance.ambulance_id == ambulance_id:
                return index
        raise KeyError(f"Ambulance not found: {ambulance_id}")

    def _hospital_index(self, hospital_id: str) -> int:
        for index, hospital in enumerate(self.hospitals):
            if hospital.hospital_id == hospital_id:
                return index
        raise KeyError(f"Hospital not found: {hospital_id}")

    def _update_incident(self, incident_id: str, now: Optional[datetime] = None, **changes) -> IncidentRecord:
        index = self._incident_index(incident_id)
        updated = replace(self.incidents[index], updated_at=now or utcnow(), **changes)
        self.incidents[index] = updated
        return updated

    def set_ambulance_status(self, ambulance_id: str, status: str) -> Ambulance:
        index = self._ambulance_index(ambulance_id)
        updated = replace(self.ambulances[index], status=AmbulanceStatus(status).value)
        self.ambulances[index] = updated
        return updated

    def assign(
        self,
        incident_id: str,
        ambulance_id: str,
        hospital_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> IncidentRecord:
        """Send an ambulance (and optionally a destination hospital) to an incident."""
        self._ambulance_index(ambulance_id)
        if hospital_id is not None:
            self._hospital_index(hospital_id)

        record = self._update_incident(
            incident_id,
            now=now,
            status=IncidentStatus.ASSIGNED.value,
            assigned_ambulance=ambulance_id,
            assigned_hospital=hospital_id,
        )
        ambulance = self.set_ambulance_status(ambulance_id, AmbulanceStatus.BUSY.value)
        logger.info("Assigned %s to %s (%s)", ambulance.vehicle_number, incident_id, hospital_id or "no hospital")
        return record

    def update_status(self, incident_id: str, status: str, now: Optional[datetime] = None) -> IncidentRecord:
        """Move a case to ``status``; closing it frees the assigned ambulance."""
        status = IncidentStatus(status).value
        record = self._update_incident(incident_id, now=now, status=status)
        closed = {IncidentStatus.COMPLETED.value, IncidentStatus.CANCELLED.value}
        if status in closed and record.assigned_ambulance is not None:
            self.set_ambulance_status(record.assigned_ambulance, AmbulanceStatus.AVAILABLE.value)
        logger.info("Case %s marked as %s", incident_id, status)
        return record

    def update_beds(self, hospital_id: str, available_beds: int, icu_available: int) -> Hospital:
        index = self._hospital_index(hospital_id)
        updated = replace(self.hospitals[index], available_beds=available_beds, icu_available=icu_available)
        self.hospitals[index] = updated
        return updated

    def accept_patient(self, incident_id: str, now: Optional[datetime] = None) -> IncidentRecord:
        """Hospital takes the patient: case goes in progress and one bed is allocated."""
        hospital_id = self.incidents[self._incident_index(incident_id)].assigned_hospital
        if hospital_id is None:
            raise ValueError(f"Incident {incident_id} has no assigned hospital")

        index = self._hospital_index(hospital_id)
        hospital = self.hospitals[index]
        self.hospitals[index] = replace(hospital, available_beds=max(0, hospital.available_beds - 1))
        return self._update_incident(incident_id, now=now, status=IncidentStatus.IN_PROGRESS.value)

    def reject_patient(self, incident_id: str, now: Optional[datetime] = None) -> IncidentRecord:
        """Hospital turns the patient away; the case returns to the dispatcher without a hospital."""
        logger.warning("Incident %s redirected to dispatcher", incident_id)
        return self._update_incident(
            incident_id,
            now=now,
            status=IncidentStatus.ASSIGNED.value,
            assigned_hospital=None,
        )

    def active_queue(self) -> List[IncidentRecord]:
        active = [incident for incident in self.incidents if incident.is_active]
        return sorted(active, key=lambda incident: incident.priority_score, reverse=True)

    def surge_alert(self, now: Optional[datetime] = None) -> SurgeResult:
        return detect_surge(
            self.active_queue(),
            radius_km=self.radius_km,
            time_window_minutes=self.time_window_minutes,
            threshold_count=self.threshold_count,
            now=now,
        )

    def record_surge(self, now: Optional[datetime] = None) -> Optional[SurgeEvent]:
        now = now or utcnow()
        surge = self.surge_alert(now=now)
        if not surge.is_surge:
            return None
        return SurgeEvent(
            zone=surge.zone,
            radius_km=self.radius_km,
            case_count=surge.count,
            detected_at=now,
        )

    def stats(self) -> DispatchStats:
        active = self.active_queue()
        return DispatchStats(
            active_cases=len(active),
            available_ambulances=len(self.available_ambulances()),
            hospitals_online=sum(1 for h in self.hospitals if h.emergency_capacity),
            pending=sum(1 for i in active if enum_value(i.status) == IncidentStatus.PENDING.value),
        )

    @staticmethod
    def surge_banner(surge: SurgeResult) -> Optional[str]:
        if not surge.is_surge or surge.zone is None:
            return None
        return f"{surge.count} emergencies detected in zone ({surge.zone.lat:.3f}, {surge.zone.lng:.3f})"
