from dataclasses import dataclass
from typing import Optional

from pronto.domain.models import Location


@dataclass(frozen=True)
class Bounds:
    south: float
    west: float
    north: float
    east: float

    def contains(self, point: Location) -> bool:
        return self.south <= point.lat <= self.north and self.west <= point.lng <= self.east


@dataclass(frozen=True)
class MapView:
    """Либо рамка по точкам, либо центр с зумом по умолчанию"""
    bounds: Optional[Bounds] = None
    center: Optional[Location] = None
    zoom: Optional[int] = None


def step_towards(position: Location, destination: Location, fraction: float = 0.05) -> Location:
    """Один шаг линейной интерполяции: pos + (dest - pos) * fraction"""
    return Location(
        lat=position.lat + (destination.lat - position.lat) * fraction,
        lng=position.lng + (destination.lng - position.lng) * fraction,
    )


def compute_bounds(
    client: Optional[Location] = None,
    business: Optional[Location] = None,
    delivery: Optional[Location] = None,
    *,
    default_center: Location,
    default_zoom: int = 13,
) -> MapView:
    points = [point for point in (client, business, delivery) if point is not None]
    if not points:
        return MapView(center=default_center, zoom=default_zoom)

    return MapView(
        bounds=Bounds(
            south=min(point.lat for point in points),
            west=min(point.lng for point in points),
            north=max(point.lat for point in points),
            east=max(point.lng for point in points),
        )
    )
