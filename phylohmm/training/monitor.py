"""
Convergence monitoring for EM training.

The monitor starts RUNNING with no previous likelihood, so the first
iteration always proceeds to a parameter update. It stops in CONVERGED once
an iteration fails to improve the total log likelihood by more than the
threshold, or in MAX_ITER when an optional cap is reached. In both cases the
statistics of the final iteration are discarded.
"""

from enum import Enum
from typing import List, Optional

import numpy as np

from phylohmm.training.config import EM_CONVERGENCE_THRESHOLD


class TrainingStatus(Enum):
    RUNNING = 'running'
    CONVERGED = 'converged'
    MAX_ITER = 'max_iter'


class ConvergenceWarning(UserWarning):
    """Training stopped at the iteration cap before converging."""


class ConvergenceMonitor:
    """Tracks total log likelihood per iteration and decides when to stop."""

    def __init__(self, threshold: float = EM_CONVERGENCE_THRESHOLD,
                 max_iter: Optional[int] = None):
        self.threshold = threshold
        self.max_iter = max_iter
        self.history: List[float] = []
        self.iter = 0
        self.previous: Optional[float] = None
        self.status = TrainingStatus.RUNNING

    def __repr__(self):
        return (f"{self.__class__.__name__}(threshold={self.threshold}, "
                f"max_iter={self.max_iter}, iter={self.iter}, status={self.status.value})")

    @property
    def converged(self) -> bool:
        return self.status is TrainingStatus.CONVERGED

    @property
    def done(self) -> bool:
        return self.status is not TrainingStatus.RUNNING

    @property
    def delta(self) -> float:
        """Change in log likelihood over the last iteration (nan before two iterations)."""
        if len(self.history) < 2:
            return np.nan
        return self.history[-1] - self.history[-2]

    def update(self, total_logl: float) -> bool:
        """
        Record one iteration's total log likelihood.

        Returns:
            True if the parameter update for this iteration should be applied,
            False if training stops here
        """
        if self.done:
            raise RuntimeError(f"Monitor already stopped ({self.status.value})")

        self.iter += 1
        self.history.append(total_logl)

        if self.previous is not None and total_logl - self.previous <= self.threshold:
            self.status = TrainingStatus.CONVERGED
            return False

        if self.max_iter is not None and self.iter >= self.max_iter:
            self.status = TrainingStatus.MAX_ITER
            return False

        self.previous = total_logl
        return True
