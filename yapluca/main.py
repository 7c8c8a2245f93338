# yapluca/main.py
import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException, Query, Request
import requests
from yapluca.db import SessionLocal, init_db
from yapluca import geo
from yapluca.api import ChargingStationAPI, NavigationAPI
from yapluca.auth import AuthService
from yapluca.consent import ConsentManager
from yapluca.context import AuthContext
from yapluca.identity import DocumentStore, IdentityProvider
from yapluca.storage import LocalStorage
from yapluca import schemas

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


def create_app(session_factory=None, station_api=None, navigation_api=None) -> FastAPI:
    session_factory = session_factory or SessionLocal

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(session_factory.kw.get("bind"))
        storage = LocalStorage(session_factory)
        auth_service = AuthService(IdentityProvider(session_factory), DocumentStore(session_factory), storage)
        app.state.auth = AuthContext(auth_service)
        app.state.consents = ConsentManager(storage)
        app.state.stations = station_api or ChargingStationAPI()
        app.state.navigation = navigation_api or NavigationAPI()
        app.state.auth.start()
        logger.info("auth context started in state %s", app.state.auth.state)
        try:
            yield
        finally:
            app.state.auth.stop()

    app = FastAPI(title="YapluCa device service", lifespan=lifespan)
    register_routes(app)
    return app


def get_auth(request: Request) -> AuthContext:
    return request.app.state.auth

def get_consents(request: Request) -> ConsentManager:
    return request.app.state.consents

def get_stations(request: Request) -> ChargingStationAPI:
    return request.app.state.stations

def get_navigation(request: Request) -> NavigationAPI:
    return request.app.state.navigation


def register_routes(app: FastAPI):

    # --- Session
    @app.post("/auth/register", response_model=schemas.AuthResult)
    def register(payload: schemas.RegisterIn, auth: AuthContext = Depends(get_auth)):
        result = auth.register(payload.email, payload.password, {"name": payload.name, "phone": payload.phone})
        if not result.success:
            raise HTTPException(400, result.error)
        return result

    @app.post("/auth/login", response_model=schemas.LoginOut)
    def login(payload: schemas.LoginIn, auth: AuthContext = Depends(get_auth),
              consents: ConsentManager = Depends(get_consents)):
        result = auth.login(payload.email, payload.password)
        if not result.success:
            raise HTTPException(400, result.error)
        return schemas.LoginOut(**result.model_dump(), show_consent_banner=consents.should_show_consent_banner())

    @app.post("/auth/logout", response_model=schemas.AuthResult)
    def logout(auth: AuthContext = Depends(get_auth)):
        result = auth.logout()
        if not result.success:
            raise HTTPException(400, result.error)
        return result

    @app.post("/auth/refresh", response_model=schemas.AuthResult)
    def refresh(auth: AuthContext = Depends(get_auth)):
        result = auth.refresh()
        if not result.success:
            raise HTTPException(401, result.error)
        return result

    @app.get("/auth/session", response_model=schemas.SessionOut)
    def session(auth: AuthContext = Depends(get_auth)):
        return {
            "state": auth.state,
            "is_authenticated": auth.is_authenticated,
            "session": auth.auth_service.check_session(),
        }

    # --- Consent
    @app.get("/consents", response_model=schemas.ConsentRecord)
    def read_consents(consents: ConsentManager = Depends(get_consents)):
        record = consents.get_consents()
        if record is None:
            raise HTTPException(503, "consents unavailable")
        return record

    @app.put("/consents", response_model=schemas.ConsentRecord)
    def save_consents(payload: schemas.ConsentIn, consents: ConsentManager = Depends(get_consents)):
        if not consents.save_consents(payload.model_dump()):
            raise HTTPException(503, "could not save consents")
        return consents.get_consents()

    @app.get("/consents/banner", response_model=schemas.BannerOut)
    def consent_banner(consents: ConsentManager = Depends(get_consents)):
        return {"show_banner": consents.should_show_consent_banner(), "expired": consents.check_consent_expiry()}

    @app.post("/location/permission", response_model=schemas.PermissionResult)
    def location_permission(payload: schemas.PermissionIn, consents: ConsentManager = Depends(get_consents)):
        return consents.request_location_permission(lambda: payload.status)

    # --- GDPR
    @app.post("/gdpr/access-logs")
    def log_access(payload: schemas.AccessLogIn, consents: ConsentManager = Depends(get_consents)):
        if not consents.log_data_access(payload.data_type, payload.purpose, payload.user_id):
            raise HTTPException(503, "could not record access")
        return {"ok": True}

    @app.get("/gdpr/export/{user_id}")
    def export_user_data(user_id: str, consents: ConsentManager = Depends(get_consents)):
        export = consents.get_user_data_export(user_id)
        if export is None:
            raise HTTPException(503, "export unavailable")
        return export

    @app.delete("/gdpr/users/{user_id}")
    def delete_user_data(user_id: str, consents: ConsentManager = Depends(get_consents)):
        if not consents.delete_user_data(user_id):
            raise HTTPException(503, "could not delete user data")
        return {"ok": True}

    @app.get("/gdpr/retention")
    def retention_periods():
        return ConsentManager.get_data_retention_periods()

    @app.get("/gdpr/purposes")
    def processing_purposes():
        return ConsentManager.get_data_processing_purposes()

    # --- Stations and rentals
    @app.get("/stations/nearby", response_model=list[schemas.StationSummary])
    def nearby_stations(lat: float = Query(...), lon: float = Query(...), radius: int = 5000,
                        stations: ChargingStationAPI = Depends(get_stations),
                        auth: AuthContext = Depends(get_auth),
                        consents: ConsentManager = Depends(get_consents)):
        response = stations.get_nearby_stations(lat, lon, radius)
        if response.get("code") != 0 or not response.get("data"):
            return []
        consents.log_data_access("geolocation", "find_nearby_stations", auth.user.uid if auth.user else None)
        return [geo.transform_station(s, lat, lon) for s in response["data"]]

    @app.get("/cabinets/{device_id}")
    def cabinet(device_id: str, stations: ChargingStationAPI = Depends(get_stations)):
        try:
            return stations.get_device_info(device_id)
        except requests.RequestException as e:
            raise HTTPException(502, f"rental API error: {e}")

    @app.post("/rentals")
    def create_rental(payload: schemas.RentOrderIn, stations: ChargingStationAPI = Depends(get_stations)):
        try:
            return stations.create_rent_order(payload)
        except requests.RequestException as e:
            raise HTTPException(502, f"rental API error: {e}")

    @app.post("/navigation/directions")
    def directions(payload: schemas.RouteIn, navigation: NavigationAPI = Depends(get_navigation)):
        try:
            return navigation.get_directions(payload.start, payload.end)
        except requests.RequestException as e:
            raise HTTPException(502, f"routing API error: {e}")

    @app.post("/navigation/distance")
    def distance(payload: schemas.RouteIn, navigation: NavigationAPI = Depends(get_navigation)):
        try:
            return navigation.get_distance(payload.start, payload.end)
        except requests.RequestException as e:
            raise HTTPException(502, f"routing API error: {e}")


app = create_app()
