"""Race orchestration: run every provider concurrently and keep the first valid answer."""

from .coordinator import RaceCoordinator, run_race
from .models import AllProvidersFailed, RaceResult, RaceTimedOut, WinningAddress

__all__ = [
    "RaceCoordinator",
    "run_race",
    "RaceResult",
    "WinningAddress",
    "AllProvidersFailed",
    "RaceTimedOut",
]
