# backend/leasekeeper/domain/saga.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SagaStep:
    """
    One local write in a cross-entity cascade.

    compensation undoes the action once it has succeeded; it is never called
    for the step that failed, only for the ones before it.
    """

    name: str
    action: Callable[[], Any]
    compensation: Optional[Callable[[], Any]] = None


def run_saga(
    steps: Sequence[SagaStep],
    *,
    saga: str,
    on_failure: Optional[Callable[[], Any]] = None,
) -> List[Any]:
    """
    Execute steps in order and return their results.

    If step k raises:
      1. on_failure runs (callers pass session.rollback so compensations start
         from a clean session)
      2. compensations for steps 1..k-1 run in reverse order; a compensation
         that raises is logged and the rest still run
      3. the original exception is re-raised
    """
    done: List[SagaStep] = []
    results: List[Any] = []

    for step in steps:
        try:
            results.append(step.action())
        except Exception:
            log.exception("saga step failed", extra={"saga": saga, "step": step.name})
            if on_failure is not None:
                on_failure()
            _compensate(done, saga=saga)
            raise
        done.append(step)

    return results


def _compensate(done: List[SagaStep], *, saga: str) -> None:
    for step in reversed(done):
        if step.compensation is None:
            continue
        try:
            step.compensation()
            log.warning("saga step compensated", extra={"saga": saga, "step": step.name})
        except Exception:
            log.exception("saga compensation failed", extra={"saga": saga, "step": step.name})
