# yapluca/schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

class SessionRecord(BaseModel):
    user_id: str
    email: str
    display_name: Optional[str] = None

class ProfileStats(BaseModel):
    rating: float = 5.0
    total_rentals: int = 0
    favorite_stations: List[str] = Field(default_factory=list)

class UserProfile(BaseModel):
    name: str
    email: str
    phone: str = ""
    created_at: str
    accepted_terms: bool = True
    profile: ProfileStats = Field(default_factory=ProfileStats)

class IdentityUser(BaseModel):
    uid: str
    email: str
    display_name: Optional[str] = None
    id_token: Optional[str] = None

class RegisterIn(BaseModel):
    email: str
    password: str
    name: str
    phone: Optional[str] = None

class LoginIn(BaseModel):
    email: str
    password: str

class AuthResult(BaseModel):
    success: bool
    user: Optional[IdentityUser] = None
    user_data: Optional[UserProfile] = None
    error: Optional[str] = None

class LoginOut(AuthResult):
    show_consent_banner: bool = False

class SessionOut(BaseModel):
    state: str
    is_authenticated: bool
    session: Optional[SessionRecord] = None

class ConsentRecord(BaseModel):
    essential: bool = True
    geolocation: bool = False
    analytics: bool = False
    marketing: bool = False
    timestamp: Optional[str] = None

    @field_validator("essential")
    @classmethod
    def essential_is_always_granted(cls, v):
        return True

class ConsentIn(BaseModel):
    geolocation: bool = False
    analytics: bool = False
    marketing: bool = False

class BannerOut(BaseModel):
    show_banner: bool
    expired: bool

class PermissionIn(BaseModel):
    # status the device's OS prompt answers with, only consulted after the consent gate
    status: str

class PermissionResult(BaseModel):
    granted: bool
    reason: Optional[str] = None
    error: Optional[str] = None

class AccessLogEntry(BaseModel):
    timestamp: str
    data_type: str
    purpose: str
    user_id: Optional[str] = None
    user_agent: str

class AccessLogIn(BaseModel):
    data_type: str
    purpose: str
    user_id: Optional[str] = None

class RentOrderIn(BaseModel):
    station_id: str
    battery_type: str
    user_id: str
    price: float
    duration: int

class Coordinate(BaseModel):
    latitude: float
    longitude: float

class StationSummary(BaseModel):
    id: str
    name: str
    address: str
    distance: str
    available: int
    in_use: int
    rating: float
    coordinate: Coordinate
    price_strategy: Dict[str, Any] = Field(default_factory=dict)
    batteries: List[Dict[str, Any]] = Field(default_factory=list)
    cabinet: Dict[str, Any] = Field(default_factory=dict)
    shop: Dict[str, Any] = Field(default_factory=dict)

class RouteIn(BaseModel):
    start: Coordinate
    end: Coordinate
