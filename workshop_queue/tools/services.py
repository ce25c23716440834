"""Service catalog with required technician skills and typical durations."""

from typing import Optional

from workshop_queue.logging_context import get_queue_logger
from workshop_queue.schemas.workshop_schema import ServiceItem

logger = get_queue_logger(__name__)

SERVICE_CATALOG: dict[str, ServiceItem] = {
    item.title: item
    for item in [
        ServiceItem(
            title="General maintenance",
            description="Oil and filter change, chain adjustment, fluid top-up and safety check.",
            required_skills=["basic_maintenance"],
            estimated_duration=60,
        ),
        ServiceItem(
            title="Brake service",
            description="Pad and disc inspection, pad replacement, brake fluid bleed.",
            required_skills=["brakes"],
            estimated_duration=90,
        ),
        ServiceItem(
            title="Electrical diagnosis",
            description="Charging system, starter, lighting and wiring fault finding.",
            required_skills=["electrical"],
            estimated_duration=60,
        ),
        ServiceItem(
            title="Engine overhaul",
            description="Top-end rebuild, valve clearance and timing work.",
            required_skills=["engine", "basic_maintenance"],
            estimated_duration=240,
        ),
        ServiceItem(
            title="Tyre change",
            description="Tyre fitting, balancing and valve replacement.",
            required_skills=["tyres"],
            estimated_duration=45,
        ),
        ServiceItem(
            title="Suspension setup",
            description="Fork oil change, seal replacement and sag adjustment.",
            required_skills=["suspension"],
            estimated_duration=120,
        ),
    ]
}

SERVICE_ALIASES: dict[str, str] = {
    "oil change": "General maintenance", "maintenance": "General maintenance",
    "service": "General maintenance", "chain": "General maintenance",
    "brakes": "Brake service", "brake pads": "Brake service",
    "battery": "Electrical diagnosis", "lights": "Electrical diagnosis",
    "starter": "Electrical diagnosis", "wiring": "Electrical diagnosis",
    "engine": "Engine overhaul", "valves": "Engine overhaul",
    "tyre": "Tyre change", "tire": "Tyre change", "puncture": "Tyre change",
    "forks": "Suspension setup", "shock": "Suspension setup",
}


def get_all_services() -> list[ServiceItem]:
    """Return every catalog entry."""
    return list(SERVICE_CATALOG.values())


def get_service(title: str) -> Optional[ServiceItem]:
    """Exact (case-insensitive) catalog lookup by title."""
    normalized = title.strip().lower()
    for item in SERVICE_CATALOG.values():
        if item.title.lower() == normalized:
            return item
    return None


def match_service(query: str) -> Optional[ServiceItem]:
    """Match free text to a catalog entry. Returns None if no match."""
    exact = get_service(query)
    if exact:
        return exact
    normalized = query.lower().strip()
    for alias, title in SERVICE_ALIASES.items():
        if alias in normalized:
            return SERVICE_CATALOG[title]
    return None


def get_required_skills(service_title: str) -> list[str]:
    """Skills a technician needs for a service. Unknown services need none."""
    item = get_service(service_title)
    if item is None:
        logger.debug("Service '%s' not in catalog, no required skills", service_title)
        return []
    return list(item.required_skills)
