"""
Per-unit failure isolation for batch operations.

Each unit (subject or alert event) runs in its own try/except and gets its
own result; one unit raising never stops the others. With more than one
worker the units run on a bounded thread pool. Results always come back
in input order.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class UnitResult(Generic[T, R]):
    """Outcome of one unit of work: either a value or the exception it raised."""

    unit: T
    value: Optional[R] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_isolated(fn: Callable[[T], R], units: Sequence[T], workers: int = 1) -> list[UnitResult[T, R]]:
    """
    Apply ``fn`` to every unit, capturing exceptions per unit.

    Args:
        fn: Work for a single unit
        units: Units to process
        workers: Thread pool size; 1 runs sequentially in the caller's thread

    Returns:
        One UnitResult per unit, in input order
    """

    def attempt(unit: T) -> UnitResult[T, R]:
        try:
            return UnitResult(unit=unit, value=fn(unit))
        except Exception as e:
            return UnitResult(unit=unit, error=e)

    if workers <= 1 or len(units) <= 1:
        return [attempt(unit) for unit in units]

    with ThreadPoolExecutor(max_workers=min(workers, len(units))) as pool:
        return list(pool.map(attempt, units))
