"""Consecutive capture-failure counting and scheduler suppression."""

from __future__ import annotations

import logging

from .constants import DEFAULT_FAILURE_THRESHOLD
from .types import FailurePolicyState

LOGGER = logging.getLogger("walkguide.failure_policy")


class FailurePolicy:
    """Suppress automatic capture after ``threshold`` consecutive failures.

    Suppression is permanent: a later success resets the counter but does not
    lift it. Only :meth:`reset`, driven by an explicit user action, does.
    """

    def __init__(self, threshold: int = DEFAULT_FAILURE_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self._state = FailurePolicyState()

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def suppressed(self) -> bool:
        return self._state.suppressed

    def snapshot(self) -> FailurePolicyState:
        return FailurePolicyState(
            consecutive_failures=self._state.consecutive_failures,
            suppressed=self._state.suppressed,
        )

    def record_success(self) -> None:
        if self._state.consecutive_failures:
            LOGGER.info(
                "Capture recovered after %d failure(s)", self._state.consecutive_failures
            )
        self._state.consecutive_failures = 0

    def record_failure(self) -> bool:
        """Count a failure; return ``True`` only on the call that suppresses."""

        self._state.consecutive_failures += 1
        LOGGER.info("Capture failure %d/%d", self._state.consecutive_failures, self.threshold)
        if self._state.suppressed or self._state.consecutive_failures < self.threshold:
            return False
        self._state.suppressed = True
        LOGGER.warning(
            "%d consecutive capture failures; automatic narration suppressed until resumed",
            self._state.consecutive_failures,
        )
        return True

    def reset(self) -> None:
        self._state = FailurePolicyState()


__all__ = ["FailurePolicy"]
