"""EM training configuration."""

from dataclasses import dataclass
from typing import Optional


# Minimum increase in total log2 likelihood required to keep iterating
EM_CONVERGENCE_THRESHOLD = 0.1

# Allowed |forward - backward| disagreement before a drift warning is logged
FB_TOLERANCE = 0.01


@dataclass
class EMConfig:
    """
    Options for one EM training run.

    Attributes:
        threshold: Convergence threshold on the per-iteration change in
            total log2 likelihood
        max_iter: Optional cap on likelihood evaluations (None = no cap)
        fb_tolerance: Forward/backward drift tolerance for the log warning
        reestimate_state_models: Refit the emission model each iteration when
            it supports it; False trains transitions only
        update_startprob: Also re-estimate begin probabilities
    """
    threshold: float = EM_CONVERGENCE_THRESHOLD
    max_iter: Optional[int] = None
    fb_tolerance: float = FB_TOLERANCE
    reestimate_state_models: bool = True
    update_startprob: bool = False

    def __post_init__(self):
        if self.threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {self.threshold}")
        if self.max_iter is not None and self.max_iter < 1:
            raise ValueError(f"max_iter must be >= 1 or None, got {self.max_iter}")
        if self.fb_tolerance <= 0:
            raise ValueError(f"fb_tolerance must be > 0, got {self.fb_tolerance}")
