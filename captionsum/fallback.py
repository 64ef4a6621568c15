from __future__ import annotations
import logging
from typing import Callable, Iterable, List, Tuple, TypeVar

logger = logging.getLogger(__name__)

C = TypeVar("C")
R = TypeVar("R")


class CandidatesExhausted(Exception):
    """Every candidate failed softly. ``failures`` keeps (candidate, error) in order."""

    def __init__(self, failures: List[Tuple[object, BaseException]]):
        super().__init__(f"all {len(failures)} candidates failed")
        self.failures = failures


def try_in_order(
    candidates: Iterable[C],
    attempt: Callable[[C], R],
    is_soft: Callable[[BaseException], bool],
) -> Tuple[C, R]:
    """
    Run ``attempt`` on each candidate, one after another, until one succeeds.

    A failure for which ``is_soft`` is true moves on to the next candidate;
    anything else is re-raised as is and no later candidate is tried.
    Returns ``(candidate, result)`` of the first success.
    """
    failures: List[Tuple[object, BaseException]] = []
    for cand in candidates:
        try:
            result = attempt(cand)
        except Exception as exc:
            if not is_soft(exc):
                raise
            logger.info("Candidate %s failed (%s), trying next", cand, exc)
            failures.append((cand, exc))
            continue
        return cand, result
    raise CandidatesExhausted(failures)
