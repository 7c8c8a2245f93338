# yapluca/api.py
"""
Thin clients for the ChargeNow rental API and OpenRouteService.

Errors are logged and re-raised; nothing is retried.
"""
import logging
import os
from typing import Optional
import requests
from yapluca.schemas import Coordinate, RentOrderIn

logger = logging.getLogger(__name__)

API_BASE_URL = os.environ.get("CHARGENOW_BASE_URL", "")
AUTH_KEY = os.environ.get("CHARGENOW_AUTH_KEY", "")
REQUEST_TIMEOUT = float(os.environ.get("CHARGENOW_TIMEOUT", "10"))

ORS_BASE_URL = "https://api.openrouteservice.org/v2"
ORS_API_KEY = os.environ.get("OPENROUTESERVICE_API_KEY", "")


class ChargingStationAPI:
    def __init__(self, base_url: str = API_BASE_URL, auth_key: str = AUTH_KEY,
                 session: Optional[requests.Session] = None, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": auth_key,
            "Content-Type": "application/json",
        })

    def get_device_info(self, device_id: str) -> dict:
        """Cabinet details: slot counts and battery charge levels."""
        try:
            response = self.session.get(f"{self.base_url}/rent/cabinet/query",
                                        params={"deviceId": device_id}, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Error fetching device info for %s: %s", device_id, e)
            raise

    def create_rent_order(self, order: RentOrderIn) -> dict:
        body = {
            "stationId": order.station_id,
            "batteryType": order.battery_type,
            "userId": order.user_id,
            "price": order.price,
            "duration": order.duration,
        }
        try:
            response = self.session.post(f"{self.base_url}/rent/order/create", json=body, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Error creating rent order for station %s: %s", order.station_id, e)
            raise

    def get_nearby_stations(self, latitude: float, longitude: float, radius: int = 5000) -> dict:
        # TODO: call GET /stations/nearby once the rental API exposes it; stations are
        # placed around the caller's position until then.
        logger.debug("nearby stations around %.5f,%.5f within %sm (mock)", latitude, longitude, radius)
        return {
            "code": 0,
            "msg": "success",
            "data": [
                {
                    "shop": {
                        "id": "BJD60151",
                        "name": "Station République #001",
                        "address": "85 Rue de la République, 75011 Paris",
                        "city": "Paris",
                        "province": "Île-de-France",
                        "latitude": str(latitude + 0.002),
                        "longitude": str(longitude + 0.001),
                        "openingTime": "24/7",
                        "price": 2.5,
                        "deposit": 20,
                        "freeMinutes": 5,
                        "dailyMaxPrice": 15,
                    },
                    "cabinet": {
                        "id": "BJD60151",
                        "online": True,
                        "slots": 8,
                        "emptySlots": 3,
                        "busySlots": 5,
                        "qrCode": "BJD60151_QR",
                    },
                    "batteries": [
                        {"slotNum": 1, "vol": 98, "batteryId": "BAT001"},
                        {"slotNum": 2, "vol": 85, "batteryId": "BAT002"},
                        {"slotNum": 3, "vol": 76, "batteryId": "BAT003"},
                    ],
                    "priceStrategy": {
                        "price": 2.5,
                        "priceMinute": 0.05,
                        "depositAmount": 20,
                        "freeMinutes": 5,
                        "dailyMaxPrice": 15,
                        "currency": "EUR",
                        "currencySymbol": "€",
                    },
                },
                {
                    "shop": {
                        "id": "BJD60152",
                        "name": "Station Centre #002",
                        "address": "12 Avenue des Champs, Centre-ville",
                        "city": "Local",
                        "province": "Region",
                        "latitude": str(latitude - 0.003),
                        "longitude": str(longitude + 0.002),
                        "openingTime": "24/7",
                        "price": 2.0,
                        "deposit": 20,
                        "freeMinutes": 5,
                        "dailyMaxPrice": 12,
                    },
                    "cabinet": {
                        "id": "BJD60152",
                        "online": True,
                        "slots": 6,
                        "emptySlots": 2,
                        "busySlots": 4,
                        "qrCode": "BJD60152_QR",
                    },
                    "batteries": [
                        {"slotNum": 1, "vol": 92, "batteryId": "BAT004"},
                        {"slotNum": 2, "vol": 88, "batteryId": "BAT005"},
                    ],
                    "priceStrategy": {
                        "price": 2.0,
                        "priceMinute": 0.04,
                        "depositAmount": 20,
                        "freeMinutes": 5,
                        "dailyMaxPrice": 12,
                        "currency": "EUR",
                        "currencySymbol": "€",
                    },
                },
            ],
        }


class NavigationAPI:
    def __init__(self, api_key: str = ORS_API_KEY, session: Optional[requests.Session] = None,
                 timeout: float = REQUEST_TIMEOUT):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_directions(self, start: Coordinate, end: Coordinate) -> dict:
        try:
            response = self.session.get(f"{ORS_BASE_URL}/directions/driving-car", params={
                "api_key": self.api_key,
                "start": f"{start.longitude},{start.latitude}",
                "end": f"{end.longitude},{end.latitude}",
            }, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Error fetching directions: %s", e)
            raise

    def get_distance(self, start: Coordinate, end: Coordinate) -> dict:
        try:
            response = self.session.post(f"{ORS_BASE_URL}/matrix/driving-car", headers={
                "Authorization": self.api_key,
                "Content-Type": "application/json",
            }, json={
                "locations": [
                    [start.longitude, start.latitude],
                    [end.longitude, end.latitude],
                ],
                "metrics": ["distance", "duration"],
            }, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Error calculating distance: %s", e)
            raise
