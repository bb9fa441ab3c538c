"""Race coordination across postal code providers."""

import contextvars
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Sequence
from uuid import uuid4

from cepfinder.adapters.base import BaseAdapter
from cepfinder.domain.models import (
    FailureReason,
    ProviderFailure,
    ProviderOutcome,
    ProviderSuccess,
)
from cepfinder.logging import get_logger
from cepfinder.logging.context import log_context

from .models import AllProvidersFailed, RaceResult, RaceTimedOut, WinningAddress

logger = get_logger(__name__, component="race")


class RaceCoordinator:
    """
    Runs every adapter concurrently against one postal code and keeps the first success.

    The coordinator is single use: build a fresh one for each race (or call
    run_race()). Each adapter runs on its own worker thread; the calling thread
    waits on the completion of any of them, bounded by the global deadline.

    When several adapters succeed within the same wake-up, whichever the
    completed set yields first wins. Callers must not rely on that order.

    By default losing adapters are neither cancelled nor awaited: their requests
    run to completion (bounded by their own timeout) and the results are never
    read. With propagate_cancellation=True a shared event is set once the race is
    decided, adapters that have not started are dropped and running ones abort
    at their next checkpoint.
    """

    def __init__(
        self,
        adapters: Sequence[BaseAdapter],
        deadline_seconds: float,
        propagate_cancellation: bool = False,
    ):
        """
        Initialize the race.

        Args:
            adapters: Adapters to race (at least one)
            deadline_seconds: Global deadline measured from race start
            propagate_cancellation: Signal losers to stop once the race is decided

        Raises:
            ValueError: If no adapters are given or the deadline is not positive
        """
        if not adapters:
            raise ValueError("At least one adapter is required to run a race")
        if deadline_seconds <= 0:
            raise ValueError(f"deadline_seconds must be positive, got: {deadline_seconds}")

        self.adapters = list(adapters)
        self.deadline_seconds = deadline_seconds
        self.propagate_cancellation = propagate_cancellation
        self._started = False
        self._started_lock = threading.Lock()

    def run(self, postal_code: str) -> RaceResult:
        """
        Race all adapters for a postal code.

        Returns:
            WinningAddress, AllProvidersFailed or RaceTimedOut. Expected failures
            are never raised.

        Raises:
            RuntimeError: If this coordinator already ran a race
        """
        with self._started_lock:
            if self._started:
                raise RuntimeError("RaceCoordinator is single use; create a new one for each race")
            self._started = True

        cancel_event = threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=len(self.adapters), thread_name_prefix="cepfinder-race"
        )

        with log_context(race_id=uuid4().hex, postal_code=postal_code):
            logger.info(
                "Race started",
                extra={
                    "event": "race.started",
                    "providers": [adapter.provider_name for adapter in self.adapters],
                    "deadline_seconds": self.deadline_seconds,
                    "propagate_cancellation": self.propagate_cancellation,
                },
            )

            started = time.monotonic()
            # Each task gets its own copy of the context so race_id reaches the worker logs
            futures: Dict[Future, BaseAdapter] = {
                executor.submit(
                    contextvars.copy_context().run,
                    self._run_adapter,
                    adapter,
                    postal_code,
                    cancel_event,
                ): adapter
                for adapter in self.adapters
            }

            try:
                result = self._await_first(futures, started)
            finally:
                if self.propagate_cancellation:
                    cancel_event.set()
                executor.shutdown(wait=False, cancel_futures=self.propagate_cancellation)

            self._log_result(result)

        return result

    def _await_first(self, futures: Dict[Future, BaseAdapter], started: float) -> RaceResult:
        """Consume completion events until one decides the race."""
        pending = set(futures)
        failures: List[ProviderFailure] = []

        while pending:
            remaining = self.deadline_seconds - (time.monotonic() - started)
            if remaining <= 0:
                break

            done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
            if not done:
                break

            for future in done:
                outcome = future.result()
                if isinstance(outcome, ProviderSuccess):
                    return WinningAddress(
                        address=outcome.address,
                        provider=outcome.provider,
                        elapsed_seconds=time.monotonic() - started,
                    )
                failures.append(outcome)

        if not pending:
            return AllProvidersFailed(
                failures=failures, elapsed_seconds=time.monotonic() - started
            )

        return RaceTimedOut(
            deadline_seconds=self.deadline_seconds,
            pending_providers=[futures[future].provider_name for future in pending],
            failures=failures,
        )

    @staticmethod
    def _run_adapter(
        adapter: BaseAdapter, postal_code: str, cancel_event: threading.Event
    ) -> ProviderOutcome:
        """Worker body. Adapter bugs are reported as failures, never raised."""
        try:
            return adapter.lookup(postal_code, cancel_event)
        except Exception as e:
            logger.exception(
                f"{adapter.provider_name} adapter raised unexpectedly",
                extra={
                    "event": "adapter.lookup.failed",
                    "provider": adapter.provider_name,
                    "reason": FailureReason.UNEXPECTED.value,
                    "error_type": type(e).__name__,
                },
            )
            return ProviderFailure(
                provider=adapter.provider_name,
                reason=FailureReason.UNEXPECTED,
                message=f"{type(e).__name__}: {e}",
            )

    def _log_result(self, result: RaceResult) -> None:
        if isinstance(result, WinningAddress):
            logger.info(
                f"{result.provider} won the race",
                extra={
                    "event": "race.won",
                    "provider": result.provider,
                    "elapsed_seconds": round(result.elapsed_seconds, 4),
                },
            )
        elif isinstance(result, AllProvidersFailed):
            logger.warning(
                "All providers failed",
                extra={
                    "event": "race.all_failed",
                    "failures": [str(failure) for failure in result.failures],
                    "elapsed_seconds": round(result.elapsed_seconds, 4),
                },
            )
        else:
            logger.warning(
                f"No provider answered within {result.deadline_seconds}s",
                extra={
                    "event": "race.timed_out",
                    "deadline_seconds": result.deadline_seconds,
                    "pending_providers": result.pending_providers,
                },
            )


def run_race(
    postal_code: str,
    adapters: Sequence[BaseAdapter],
    deadline_seconds: float,
    propagate_cancellation: bool = False,
) -> RaceResult:
    """Run one race with a fresh coordinator."""
    coordinator = RaceCoordinator(
        adapters,
        deadline_seconds=deadline_seconds,
        propagate_cancellation=propagate_cancellation,
    )
    return coordinator.run(postal_code)
