"""Core domain models for addresses and provider outcomes.

This module defines the data structures shared by adapters and the race:
- CanonicalAddress: normalized address record every provider maps into
- ProviderSuccess / ProviderFailure: per-adapter outcome handed to the race
- ProviderName / FailureReason: closed vocabularies used by both
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field, field_validator


class ProviderName(str, Enum):
    """Known upstream lookup services."""

    BRASILAPI = "BrasilAPI"
    VIACEP = "ViaCEP"


class FailureReason(str, Enum):
    """Why a single adapter did not produce an address."""

    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    BODY_READ = "body_read"
    DECODE = "decode"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class CanonicalAddress(BaseModel):
    """Normalized address record.

    Built exactly once per successful adapter invocation and never mutated.
    postal_code, city and region must be non-empty; street and neighborhood
    may be empty (many small towns have a single postal code).
    """

    postal_code: str = Field(..., description="Postal code as returned by the provider")
    street: str = Field("", description="Street name")
    neighborhood: str = Field("", description="Neighborhood (bairro)")
    city: str = Field(..., description="City name")
    region: str = Field(..., description="State code (UF)")
    source: ProviderName = Field(..., description="Provider that produced this record")

    @field_validator("postal_code", "city", "region")
    @classmethod
    def require_non_empty(cls, v: str) -> str:
        """Strip whitespace and reject empty values."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("street", "neighborhood", mode="before")
    @classmethod
    def blank_if_missing(cls, v):
        """Treat None as an empty string."""
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    model_config = {
        "frozen": True,
        "use_enum_values": True,
        "json_schema_extra": {"example": {
            "postal_code": "01001000",
            "street": "Praça da Sé",
            "neighborhood": "Sé",
            "city": "São Paulo",
            "region": "SP",
            "source": "BrasilAPI",
        }},
    }


@dataclass(frozen=True)
class ProviderSuccess:
    """An adapter produced a valid address.

    Attributes:
        address: Normalized record (its source names the provider)
        elapsed_seconds: Time the adapter spent on the lookup
    """

    address: CanonicalAddress
    elapsed_seconds: float = 0.0

    @property
    def provider(self) -> str:
        return self.address.source


@dataclass(frozen=True)
class ProviderFailure:
    """An adapter terminated without an address.

    Attributes:
        provider: Name of the provider that failed
        reason: Failure class
        message: Human-readable description
    """

    provider: str
    reason: FailureReason
    message: str

    def __str__(self) -> str:
        return f"{self.provider}: [{self.reason.value}] {self.message}"


ProviderOutcome = Union[ProviderSuccess, ProviderFailure]
