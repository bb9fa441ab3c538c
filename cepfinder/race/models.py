"""Race outcomes.

Exactly one of these is produced per race:
- WinningAddress: the first adapter to succeed
- AllProvidersFailed: every adapter failed before the deadline
- RaceTimedOut: the global deadline elapsed with no winner and adapters still pending
"""

from dataclasses import dataclass, field
from typing import List, Union

from cepfinder.domain.models import CanonicalAddress, ProviderFailure


@dataclass(frozen=True)
class WinningAddress:
    """
    The race was won.

    Attributes:
        address: Canonical record produced by the winner
        provider: Name of the winning provider (same as address.source)
        elapsed_seconds: Time from race start to the decision
    """

    address: CanonicalAddress
    provider: str
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class AllProvidersFailed:
    """
    Every adapter reported a failure; one entry per provider, in arrival order.

    Attributes:
        failures: Failure reported by each provider
        elapsed_seconds: Time from race start until the last failure
    """

    failures: List[ProviderFailure] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def providers(self) -> List[str]:
        return [failure.provider for failure in self.failures]


@dataclass(frozen=True)
class RaceTimedOut:
    """
    The global deadline elapsed before any adapter succeeded.

    Attributes:
        deadline_seconds: Configured global deadline
        pending_providers: Providers that had not answered yet
        failures: Failures that did arrive before the deadline
    """

    deadline_seconds: float
    pending_providers: List[str] = field(default_factory=list)
    failures: List[ProviderFailure] = field(default_factory=list)


RaceResult = Union[WinningAddress, AllProvidersFailed, RaceTimedOut]
