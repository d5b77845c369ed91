"""
Shipping helpers: distances, date arithmetic and unit conversions.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

EARTH_RADIUS_KM = 6371.0
KG_PER_LB = 0.45359237
CM_PER_IN = 2.54

# Beyond this distance carriers quote their long-haul transit time
LONG_HAUL_KM = 500.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def zone_distance_km(origin_postal_code: str, destination_postal_code: str) -> float:
    """
    Rough distance from postal-code zones, used when coordinates are unknown.

    Same three-digit zone is local (50 km), nearby zones are regional
    (300 km), everything else is national (800 km).
    """
    origin_zone = (origin_postal_code or "").strip()[:3]
    dest_zone = (destination_postal_code or "").strip()[:3]

    if origin_zone and origin_zone == dest_zone:
        return 50.0

    if origin_zone.isdigit() and dest_zone.isdigit():
        if abs(int(origin_zone) - int(dest_zone)) <= 50:
            return 300.0

    return 800.0


def add_days(start: datetime, days: int) -> datetime:
    return start + timedelta(days=days)


def add_hours(start: datetime, hours: int) -> datetime:
    return start + timedelta(hours=hours)


def kg_to_lb(kg: float) -> float:
    return round(kg / KG_PER_LB, 2)


def cm_to_in(cm: float) -> float:
    return round(cm / CM_PER_IN, 2)


def kg_to_grams(kg: float) -> int:
    return int(round(kg * 1000))


def volumetric_weight_kg(length_cm: float, width_cm: float, height_cm: float,
                         divisor: float = 5000.0) -> float:
    """Dimensional weight using the common air-freight divisor."""
    return (length_cm * width_cm * height_cm) / divisor


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from a carrier reply; None on empty input."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
