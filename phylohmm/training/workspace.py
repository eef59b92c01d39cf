"""
Scratch tables for EM training.

One EMWorkspace is allocated per training run and sized to the longest
sample plus a sentinel column. Emission, forward and backward tables are
overwritten in place for every sample and iteration.
"""

from typing import Any, Tuple

import numpy as np

from phylohmm.core.hmm import HMM


class EMWorkspace:
    """Emission cache and forward/backward tables for one training run."""

    def __init__(self, n_states: int, max_length: int):
        if n_states < 1:
            raise ValueError(f"n_states must be >= 1, got {n_states}")
        if max_length < 1:
            raise ValueError(f"max_length must be >= 1, got {max_length}")

        shape = (n_states, max_length + 1)
        self.n_states = n_states
        self.max_length = max_length
        self.emissions = np.full(shape, -np.inf)
        self.forward = np.full(shape, -np.inf)
        self.backward = np.full(shape, -np.inf)

        # Instrumentation
        self.emission_calls = 0
        self.emissions_cached = False

    def compute_emissions(self, model: Any, data: Any, sample: int, length: int):
        """
        Ask the model to score one sample.

        Column `length` is the end-of-sample sentinel and is always reset to
        log2(0) after the model fills positions [0, length).
        """
        if length > self.max_length:
            raise ValueError(f"Sample {sample} has length {length} > workspace size {self.max_length}")

        model.compute_emissions(self.emissions, data, sample, length)
        self.emissions[:, length] = -np.inf
        self.emission_calls += 1
        self.emissions_cached = True

    def forward_backward(self, hmm: HMM, length: int) -> Tuple[float, float]:
        """
        Run both recursions over the current emission table.

        Returns:
            (logp_fw, logp_bw) total log2 likelihoods
        """
        logp_fw, _ = hmm.forward(self.emissions, length, out=self.forward)
        logp_bw, _ = hmm.backward(self.emissions, length, out=self.backward)

        # No transition leaves the last position
        self.backward[:, length] = -np.inf
        return logp_fw, logp_bw
