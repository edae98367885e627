# backend/app/enums.py
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    AGENCY_ADMIN = "AGENCY_ADMIN"
    AGENT = "AGENT"


class ListingStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PropertyType(str, Enum):
    HOUSE = "HOUSE"
    APARTMENT = "APARTMENT"
    LAND = "LAND"
    OFFICE = "OFFICE"


class TransactionType(str, Enum):
    SALE = "SALE"
    RENT = "RENT"
    ANTICRETICO = "ANTICRETICO"


class Currency(str, Enum):
    BOLIVIANOS = "BOLIVIANOS"
    DOLLARS = "DOLLARS"


class QuadrantType(str, Enum):
    DEPARTAMENTO = "DEPARTAMENTO"


class QuadrantStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    UNAVAILABLE = "UNAVAILABLE"
