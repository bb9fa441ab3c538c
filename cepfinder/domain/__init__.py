"""Domain models for cepfinder."""

from .models import (
    CanonicalAddress,
    FailureReason,
    ProviderFailure,
    ProviderName,
    ProviderOutcome,
    ProviderSuccess,
)

__all__ = [
    "CanonicalAddress",
    "FailureReason",
    "ProviderFailure",
    "ProviderName",
    "ProviderOutcome",
    "ProviderSuccess",
]
