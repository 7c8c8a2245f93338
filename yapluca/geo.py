# yapluca/geo.py
import math
from yapluca.schemas import Coordinate, StationSummary

EARTH_RADIUS_KM = 6371
DEFAULT_STATION_RATING = 4.5

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c

def format_distance(km: float) -> str:
    if km < 1:
        # halves round up
        return f"{math.floor(km * 1000 + 0.5)}m"
    return f"{km:.1f}km"

def transform_station(station: dict, latitude: float, longitude: float) -> StationSummary:
    """Flatten a rental API station (shop/cabinet/batteries) into a map summary."""
    shop = station["shop"]
    cabinet = station["cabinet"]
    lat, lon = float(shop["latitude"]), float(shop["longitude"])
    return StationSummary(
        id=shop["id"],
        name=shop["name"],
        address=shop["address"],
        distance=format_distance(haversine_km(latitude, longitude, lat, lon)),
        available=cabinet["emptySlots"],
        in_use=cabinet["busySlots"],
        # the rental API carries no rating yet
        rating=DEFAULT_STATION_RATING,
        coordinate=Coordinate(latitude=lat, longitude=lon),
        price_strategy=station.get("priceStrategy") or {},
        batteries=station.get("batteries") or [],
        cabinet=cabinet,
        shop=shop,
    )
