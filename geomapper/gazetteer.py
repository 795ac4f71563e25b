"""Moroccan reference cities and closest-city lookup."""

import math
from dataclasses import dataclass

MEAN_EARTH_RADIUS_KM = 6371.0

WITHIN_KM = 10.0
NEAR_KM = 50.0


@dataclass(frozen=True)
class Place:
    name: str
    lat: float
    lon: float


@dataclass(frozen=True)
class ClosestPlace:
    name: str
    distance_km: float
    label: str

    def to_dict(self) -> dict:
        return {"name": self.name,
                "distance_km": round(self.distance_km, 3),
                "label": self.label}


# Order matters: the first entry wins an exact tie.
MOROCCAN_CITIES: tuple[Place, ...] = (
    Place("Casablanca", 33.5731, -7.5898),
    Place("Rabat",      34.0209, -6.8416),
    Place("Marrakech",  31.6295, -7.9811),
    Place("Fes",        34.0181, -5.0078),
    Place("Tangier",    35.7595, -5.8340),
    Place("Agadir",     30.4278, -9.5981),
    Place("Oujda",      34.6867, -1.9114),
    Place("Kenitra",    34.2524, -6.5890),
    Place("Tetouan",    35.5889, -5.3626),
    Place("Safi",       32.2994, -9.2372),
    Place("Laayoune",   27.1253, -13.1625),
    Place("Dakhla",     23.6848, -15.9579),
)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float,
                 radius: float = MEAN_EARTH_RADIUS_KM) -> float:
    """Great-circle distance between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlam = math.radians(lon2 - lon1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return 2 * radius * math.asin(min(1.0, math.sqrt(h)))


def proximity_label(name: str, distance_km: float) -> str:
    if distance_km < WITHIN_KM:
        return f"within {name}"
    if distance_km < NEAR_KM:
        return f"near {name}"
    return f"region of {name}"


def closest_place(lat: float, lon: float,
                  places: tuple[Place, ...] = MOROCCAN_CITIES) -> ClosestPlace:
    """Nearest gazetteer entry to a WGS84 point, with a proximity label."""
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValueError(f"invalid coordinate ({lat}, {lon})")
    best = None
    best_km = math.inf
    for place in places:
        d = haversine_km(lat, lon, place.lat, place.lon)
        if d < best_km:
            best, best_km = place, d
    if best is None:
        raise ValueError("gazetteer is empty")
    return ClosestPlace(best.name, best_km, proximity_label(best.name, best_km))
