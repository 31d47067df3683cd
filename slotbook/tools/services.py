"""Service catalog: categories and the bookable services inside each."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

SERVICE_CATALOG: dict[str, dict] = {
    "Oil Change": {
        "description": "Engine oil and filter replacement with a multi-point fluid check.",
        "services": {
            "conventional-oil": {"title": "Conventional Oil Change", "price": 1500},
            "synthetic-oil": {"title": "Full Synthetic Oil Change", "price": 2800},
            "diesel-oil": {"title": "Diesel Engine Oil Change", "price": 3200},
        },
    },
    "Tire Service": {
        "description": "Tire mounting, rotation, balancing and puncture repair.",
        "services": {
            "tire-rotation": {"title": "Tire Rotation", "price": 600},
            "wheel-balancing": {"title": "Wheel Balancing", "price": 800},
            "wheel-alignment": {"title": "Four-Wheel Alignment", "price": 1200},
            "puncture-repair": {"title": "Puncture Repair", "price": 350},
        },
    },
    "Brake Service": {
        "description": "Brake inspection, pad and rotor replacement and fluid flush.",
        "services": {
            "brake-inspection": {"title": "Brake Inspection", "price": 500},
            "brake-pads": {"title": "Brake Pad Replacement", "price": 2500},
            "brake-fluid": {"title": "Brake Fluid Flush", "price": 1100},
        },
    },
    "Engine Diagnostics": {
        "description": "Computerized scan, check-engine light diagnosis and tune-up.",
        "services": {
            "obd-scan": {"title": "OBD Diagnostic Scan", "price": 900},
            "tune-up": {"title": "Engine Tune-Up", "price": 3500},
        },
    },
    "Car Wash & Detailing": {
        "description": "Exterior wash, interior vacuum and full detailing packages.",
        "services": {
            "basic-wash": {"title": "Basic Wash", "price": 250},
            "interior-detail": {"title": "Interior Detailing", "price": 1800},
            "full-detail": {"title": "Full Detailing Package", "price": 4200},
        },
    },
}

CATEGORY_ALIASES: dict[str, str] = {
    "oil": "Oil Change", "lube": "Oil Change", "pms": "Oil Change",
    "tire": "Tire Service", "tyre": "Tire Service", "wheel": "Tire Service",
    "alignment": "Tire Service", "rotation": "Tire Service",
    "brake": "Brake Service", "pads": "Brake Service",
    "diagnostic": "Engine Diagnostics", "check engine": "Engine Diagnostics",
    "tune": "Engine Diagnostics", "scan": "Engine Diagnostics",
    "wash": "Car Wash & Detailing", "detail": "Car Wash & Detailing",
}


def get_all_categories() -> list[dict]:
    """Return all categories with a service count."""
    return [
        {"id": cid, "name": cid, "service_count": len(info["services"])}
        for cid, info in SERVICE_CATALOG.items()
    ]


def get_services_for_category(category: str) -> list[dict]:
    """Return the services offered under ``category``; empty if the category is unknown."""
    info = SERVICE_CATALOG.get(category)
    if info is None:
        return []
    return [
        {"id": sid, "category": category, **service}
        for sid, service in info["services"].items()
    ]


def get_service_details(service_id: str) -> Optional[dict]:
    """Get full details for a specific service."""
    for cid, info in SERVICE_CATALOG.items():
        if service_id in info["services"]:
            return {"id": service_id, "category": cid, **info["services"][service_id]}
    return None


def is_valid_service(category: str, service_id: str) -> bool:
    """Check that ``service_id`` is offered under ``category``."""
    info = SERVICE_CATALOG.get(category)
    return info is not None and service_id in info["services"]


def match_category(query: str) -> Optional[str]:
    """Match free text to a category ID. Returns None if no match."""
    normalized = query.lower().strip()
    for cid in SERVICE_CATALOG:
        if cid.lower() == normalized:
            return cid
    for alias, cid in CATEGORY_ALIASES.items():
        if alias in normalized:
            return cid
    return None
