from __future__ import annotations

from datetime import timedelta

from emergency_dispatch.analytics import overview
from emergency_dispatch.dispatch import DispatchBoard
from emergency_dispatch.log import setup_logging
from emergency_dispatch.models import Ambulance, EmergencyType, Hospital, IncidentReport, utcnow


def build_demo_board() -> DispatchBoard:
    ambulances = [
        Ambulance(ambulance_id="AMB-1", vehicle_number="KA-01-1001", lat=12.9716, lng=77.5946),
        Ambulance(ambulance_id="AMB-2", vehicle_number="KA-01-1002", lat=13.0358, lng=77.5970, status="busy"),
    ]
    hospitals = [
        Hospital(hospital_id="H-1", name="City General", lat=12.9600, lng=77.5800, available_beds=12, icu_available=3),
        Hospital(
            hospital_id="H-2",
            name="North Clinic",
            lat=13.0500,
            lng=77.6000,
            available_beds=0,
            icu_available=0,
            emergency_capacity=False,
        ),
    ]
    board = DispatchBoard(ambulances=ambulances, hospitals=hospitals)

    now = utcnow()
    reports = [
        IncidentReport("INC-1", EmergencyType.ACCIDENT, 12.9352, 77.6245, reported_at=now - timedelta(minutes=12)),
        IncidentReport("INC-2", EmergencyType.FIRE, 12.9360, 77.6250, reported_at=now - timedelta(minutes=8)),
        IncidentReport(
            "INC-3",
            EmergencyType.SEVERE_TRAUMA,
            12.9345,
            77.6238,
            is_elderly=True,
            reported_at=now - timedelta(minutes=5),
        ),
        IncidentReport("INC-4", EmergencyType.CARDIAC_ARREST, 13.1986, 77.7066, is_elderly=True, reported_at=now),
    ]
    for report in reports:
        board.register(report)
    return board


def main() -> None:
    setup_logging()
    board = build_demo_board()

    print("=== Dispatch Queue ===")
    for incident in board.active_queue():
        print(f" - {incident.incident_id}: {incident.type} [{incident.priority_label} · {incident.priority_score}pts]")

    stats = board.stats()
    print(f"\nActive cases: {stats.active_cases}, pending: {stats.pending}")
    print(f"Available ambulances: {stats.available_ambulances}, hospitals online: {stats.hospitals_online}")

    banner = board.surge_banner(board.surge_alert())
    print(f"\nSurge: {banner or 'None'}")

    summary = overview(board.incidents)
    print("\nBy priority:")
    for label, count in summary["priority_distribution"].items():
        print(f" - {label}: {count}")


if __name__ == "__main__":
    main()
