# backend/app/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import (
    Currency,
    ListingStatus,
    PropertyType,
    QuadrantStatus,
    QuadrantType,
    Role,
    TransactionType,
)


# -------------------- Agencies --------------------

class AgencyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    logo_url: Optional[str] = Field(default=None, max_length=500)
    address: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=200)


class AgencyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    logo_url: Optional[str] = Field(default=None, max_length=500)
    address: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=200)
    active: Optional[bool] = None


class AgencyContactUpdate(BaseModel):
    """What an agency admin may change about their own agency."""

    logo_url: Optional[str] = Field(default=None, max_length=500)
    address: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=200)


class AgencyOut(BaseModel):
    id: int
    name: str
    logo_url: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AgencyBrief(BaseModel):
    id: int
    name: str
    logo_url: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------- Users / profile --------------------

class UserCreate(BaseModel):
    external_auth_id: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=200)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    role: Role = Role.AGENT
    agency_id: Optional[int] = None

    @model_validator(mode="after")
    def _role_matches_agency(self):
        if self.role is Role.SUPER_ADMIN and self.agency_id is not None:
            raise ValueError("SUPER_ADMIN users cannot belong to an agency")
        return self


class UserUpdate(BaseModel):
    email: Optional[str] = Field(default=None, max_length=200)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    role: Optional[Role] = None
    agency_id: Optional[int] = None
    active: Optional[bool] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)


class UserOut(BaseModel):
    id: int
    external_auth_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    agency_id: Optional[int] = None
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserBrief(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PrincipalOut(BaseModel):
    user_id: int
    external_auth_id: str
    email: Optional[str] = None
    role: str
    agency_id: Optional[int] = None
    active: bool


# -------------------- Properties --------------------

class PropertyCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=20, max_length=1000)
    property_type: PropertyType
    transaction_type: TransactionType

    price: float = Field(..., gt=0)
    currency: Currency = Currency.BOLIVIANOS

    location_state: str = Field(..., min_length=2, max_length=120)
    location_city: str = Field(..., min_length=2, max_length=120)
    location_neigh: Optional[str] = Field(default=None, max_length=120)
    address: str = Field(..., min_length=10, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    garage_spaces: int = Field(default=0, ge=0)
    square_meters: float = Field(..., gt=0)

    images: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)


class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=5, max_length=100)
    description: Optional[str] = Field(default=None, min_length=20, max_length=1000)
    property_type: Optional[PropertyType] = None
    transaction_type: Optional[TransactionType] = None

    price: Optional[float] = Field(default=None, gt=0)
    currency: Optional[Currency] = None

    location_state: Optional[str] = Field(default=None, min_length=2, max_length=120)
    location_city: Optional[str] = Field(default=None, min_length=2, max_length=120)
    location_neigh: Optional[str] = Field(default=None, max_length=120)
    address: Optional[str] = Field(default=None, min_length=10, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    garage_spaces: Optional[int] = Field(default=None, ge=0)
    square_meters: Optional[float] = Field(default=None, gt=0)

    images: Optional[List[str]] = None
    videos: Optional[List[str]] = None
    features: Optional[List[str]] = None

    # optimistic concurrency: the version the client last read
    expected_version: Optional[int] = None


class PropertyOut(BaseModel):
    id: int
    title: str
    description: str
    property_type: str
    transaction_type: str
    status: str
    rejection_message: Optional[str] = None

    agent_id: int
    agency_id: int

    price: float
    currency: str
    location_state: str
    location_city: str
    location_neigh: Optional[str] = None
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    bedrooms: int
    bathrooms: int
    garage_spaces: int
    square_meters: float

    images: List[str] = Field(default_factory=list)
    videos: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)

    version: int
    created_at: datetime
    updated_at: datetime

    agent: Optional[UserBrief] = None
    agency: Optional[AgencyBrief] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------- Projects / floors / quadrants --------------------

class QuadrantCreate(BaseModel):
    quadrant_type: QuadrantType = QuadrantType.DEPARTAMENTO
    area: float = Field(..., gt=0)
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    price: float = Field(..., gt=0)
    currency: Currency = Currency.BOLIVIANOS
    exchange_rate: Optional[float] = Field(default=None, gt=0)
    status: QuadrantStatus = QuadrantStatus.AVAILABLE
    active: bool = True


class QuadrantUpdate(BaseModel):
    quadrant_type: Optional[QuadrantType] = None
    area: Optional[float] = Field(default=None, gt=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, gt=0)
    currency: Optional[Currency] = None
    exchange_rate: Optional[float] = Field(default=None, gt=0)
    status: Optional[QuadrantStatus] = None
    active: Optional[bool] = None


class QuadrantOut(BaseModel):
    id: int
    floor_id: int
    custom_id: str
    quadrant_type: str
    area: float
    bedrooms: int
    bathrooms: int
    price: float
    currency: str
    exchange_rate: Optional[float] = None
    status: str
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FloorCreate(BaseModel):
    number: int = Field(..., ge=1)
    name: Optional[str] = Field(default=None, max_length=50)


class FloorUpdate(BaseModel):
    number: Optional[int] = Field(default=None, ge=1)
    name: Optional[str] = Field(default=None, max_length=50)


class FloorWithQuadrantsCreate(FloorCreate):
    quadrants: List[QuadrantCreate] = Field(default_factory=list)


class FloorOut(BaseModel):
    id: int
    project_id: int
    number: int
    name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    quadrants: List[QuadrantOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=10, max_length=2000)
    location: str = Field(..., min_length=1, max_length=200)
    images: List[str] = Field(default_factory=list)
    brochure_url: Optional[str] = Field(default=None, max_length=500)
    google_maps_url: Optional[str] = Field(default=None, max_length=500)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    # optional nested structure, created in the same transaction
    floors: List[FloorWithQuadrantsCreate] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=2000)
    location: Optional[str] = Field(default=None, min_length=1, max_length=200)
    images: Optional[List[str]] = None
    brochure_url: Optional[str] = Field(default=None, max_length=500)
    google_maps_url: Optional[str] = Field(default=None, max_length=500)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    active: Optional[bool] = None

    expected_version: Optional[int] = None


class ProjectOut(BaseModel):
    id: int
    name: str
    description: str
    location: str
    images: List[str] = Field(default_factory=list)
    brochure_url: Optional[str] = None
    google_maps_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    status: str
    rejection_message: Optional[str] = None
    active: bool

    agent_id: int
    agency_id: int

    version: int
    created_at: datetime
    updated_at: datetime

    agent: Optional[UserBrief] = None
    agency: Optional[AgencyBrief] = None
    floors: List[FloorOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


# -------------------- Lifecycle payloads --------------------

class RejectIn(BaseModel):
    rejection_message: Optional[str] = Field(default=None, max_length=1000)
    expected_version: Optional[int] = None


class ApproveIn(BaseModel):
    expected_version: Optional[int] = None


class DecisionIn(BaseModel):
    """Approval-queue payload: approve or reject a listing by id."""

    id: int
    status: ListingStatus
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)
    expected_version: Optional[int] = None


# -------------------- Metrics / audit --------------------

class StatusCounts(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class MetricsOut(BaseModel):
    scope: str
    agency_id: Optional[int] = None
    properties: StatusCounts
    projects: StatusCounts
    agencies: Optional[int] = None
    users: Optional[int] = None


# -------------------- Catalog helpers --------------------

class PropertyStatsOut(StatusCounts):
    # sum of APPROVED prices, currencies mixed as stored
    total_value: float = 0.0


class CityOption(BaseModel):
    value: str
    label: str
    state: str


class LocationsOut(BaseModel):
    states: List[str] = Field(default_factory=list)
    cities: List[CityOption] = Field(default_factory=list)


class SearchSuggestion(BaseModel):
    type: str  # location | property_type | price_range
    value: str
    label: str
    category: Optional[str] = None


class UserAssetsOut(BaseModel):
    properties_count: int
    projects_count: int


class AuditEventOut(BaseModel):
    id: int
    agency_id: Optional[int] = None
    actor_user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    created_at: datetime
