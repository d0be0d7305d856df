"""Ordered multi-step writes with retry and compensation.

Several operations touch more than one table in separate commits (accepting a
friend request, approving a verification request, fanning out report
notifications). :class:`CompositeWrite` runs those steps in order, commits after
each one, retries later steps with a bounded backoff and, when a step keeps
failing, undoes the completed steps in reverse order.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CompositeWriteError(RuntimeError):
    """Raised when a later step of a composite write cannot be completed."""

    def __init__(
        self,
        operation: str,
        *,
        failed_step: str,
        completed: Sequence[str],
        compensated: bool,
    ) -> None:
        self.operation = operation
        self.failed_step = failed_step
        self.completed = tuple(completed)
        self.compensated = compensated
        outcome = "rolled back" if compensated else "partially applied"
        super().__init__(f"{operation} failed at step '{failed_step}' and was {outcome}")

    @property
    def partially_applied(self) -> bool:
        return bool(self.completed) and not self.compensated

    def as_http_exception(self) -> HTTPException:
        if self.partially_applied:
            detail = (
                f"{self.operation} was partially applied "
                f"(completed: {', '.join(self.completed)}; failed: {self.failed_step})"
            )
        else:
            detail = f"{self.operation} failed and was rolled back"
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@dataclass(slots=True)
class _CompletedStep:
    name: str
    result: Any
    compensate: Callable[[Any], None] | None


class CompositeWrite:
    """Run named steps against ``db`` and compensate on exhausted retries."""

    def __init__(
        self,
        db: Session,
        name: str,
        *,
        retry_delays: Sequence[float] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.db = db
        self.name = name
        if retry_delays is None:
            retry_delays = get_settings().composite_retry_delays
        self.retry_delays = tuple(max(0.0, float(delay)) for delay in retry_delays)
        self._sleep = sleep
        self._completed: list[_CompletedStep] = []

    @property
    def completed_steps(self) -> tuple[str, ...]:
        return tuple(step.name for step in self._completed)

    def step(
        self,
        name: str,
        action: Callable[[], T],
        compensate: Callable[[T], None] | None = None,
    ) -> T:
        """Run ``action`` and commit; ``compensate`` receives its result on rollback."""

        if not self._completed:
            # Nothing to undo yet, so the first failure surfaces unchanged.
            try:
                result = action()
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self._completed.append(_CompletedStep(name, result, compensate))
            return result

        attempts = len(self.retry_delays) + 1
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                result = action()
                self.db.commit()
            except HTTPException:
                self.db.rollback()
                self._compensate()
                raise
            except Exception as exc:
                self.db.rollback()
                last_error = exc
                if attempt < len(self.retry_delays):
                    logger.warning(
                        "%s: step %s failed (attempt %d/%d), retrying", self.name, name, attempt + 1, attempts
                    )
                    self._sleep(self.retry_delays[attempt])
                continue
            self._completed.append(_CompletedStep(name, result, compensate))
            return result

        completed = self.completed_steps
        compensated = self._compensate()
        raise CompositeWriteError(
            self.name,
            failed_step=name,
            completed=completed,
            compensated=compensated,
        ) from last_error

    def _compensate(self) -> bool:
        clean = True
        for step in reversed(self._completed):
            if step.compensate is None:
                clean = False
                continue
            try:
                step.compensate(step.result)
                self.db.commit()
            except Exception:
                self.db.rollback()
                clean = False
                logger.exception("%s: compensation for step %s failed", self.name, step.name)
                continue
            logger.warning("%s: compensated step %s", self.name, step.name)
        self._completed.clear()
        return clean


__all__ = ["CompositeWrite", "CompositeWriteError"]
