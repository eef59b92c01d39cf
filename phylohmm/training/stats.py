"""
Expected sufficient statistics for Baum-Welch.

Counts are combined in log2 space and exponentiated only immediately before
being added. Transition counts use the sample's forward log likelihood as
normalizer; emission counts are normalized per position.
"""

from typing import Optional

import numpy as np

from phylohmm.core.hmm import log2_sum


# Upper bound on (N, N, block) elements held at once when counting transitions
_BLOCK_ELEMENTS = 1 << 22


def _block_size(n_states: int) -> int:
    """Positions per vectorized block for an n_states HMM."""
    return max(1, _BLOCK_ELEMENTS // (n_states * n_states))


class SufficientStats:
    """
    Expected transition counts A and emission counts E for one iteration.

    Attributes:
        transitions: (N, N) expected k -> l transition counts
        transition_totals: (N,) row sums of transitions
        emissions: (N, n_categories) expected emission counts, or None
        emission_totals: (N,) row sums of emissions, or None
        start: (N,) expected begin-state counts, or None
    """

    def __init__(self, n_states: int, n_categories: Optional[int] = None,
                 track_start: bool = False):
        self.n_states = n_states
        self.n_categories = n_categories
        self.transitions = np.zeros((n_states, n_states))
        self.transition_totals = np.zeros(n_states)

        self.emissions: Optional[np.ndarray] = None
        self.emission_totals: Optional[np.ndarray] = None
        if n_categories is not None:
            self.emissions = np.zeros((n_states, n_categories))
            self.emission_totals = np.zeros(n_states)

        self.start: Optional[np.ndarray] = np.zeros(n_states) if track_start else None

    def reset(self):
        """Zero every accumulator."""
        self.transitions.fill(0.0)
        self.transition_totals.fill(0.0)
        if self.emissions is not None:
            self.emissions.fill(0.0)
            self.emission_totals.fill(0.0)
        if self.start is not None:
            self.start.fill(0.0)

    def add_transitions(self, log_transmat: np.ndarray, emissions: np.ndarray,
                        forward: np.ndarray, backward: np.ndarray,
                        length: int, log_prob: float):
        """
        Add expected transition counts for one sample.

        For each position i < length and states k, l the contribution is
        2^(fw[k,i] + T[k,l] + em[l,i+1] + bw[l,i+1] - log_prob). Column
        `length` of emissions/backward is the sentinel.
        """
        block = _block_size(self.n_states)
        for start in range(0, length, block):
            stop = min(start + block, length)
            # (N, N, block)
            log_xi = (forward[:, np.newaxis, start:stop] +
                      log_transmat[:, :, np.newaxis] +
                      (emissions[:, start + 1:stop + 1] +
                       backward[:, start + 1:stop + 1])[np.newaxis, :, :] -
                      log_prob)
            counts = np.exp2(log_xi).sum(axis=2)
            self.transitions += counts
            self.transition_totals += counts.sum(axis=1)

    def add_emissions(self, forward: np.ndarray, backward: np.ndarray,
                      length: int, categories: np.ndarray):
        """
        Add posterior state responsibilities to the emission counts.

        Args:
            forward, backward: Score tables, (N, >= length)
            length: Number of positions
            categories: Observation category of each position, shape (length,)
        """
        if self.emissions is None:
            raise ValueError("Emission counts are not tracked (n_categories is None)")
        categories = np.asarray(categories, dtype=np.intp)
        if categories.shape != (length,):
            raise ValueError(f"Expected {length} categories, got shape {categories.shape}")
        if length and (categories.min() < 0 or categories.max() >= self.n_categories):
            raise ValueError(
                f"Observation categories must lie in [0, {self.n_categories}), "
                f"got range [{categories.min()}, {categories.max()}]"
            )

        log_gamma = forward[:, :length] + backward[:, :length]
        # To avoid rounding errors, normalize each position separately
        this_logp = log2_sum(log_gamma, axis=0)
        gamma = np.exp2(log_gamma - this_logp)

        for k in range(self.n_states):
            self.emissions[k] += np.bincount(categories, weights=gamma[k],
                                             minlength=self.n_categories)
        self.emission_totals += gamma.sum(axis=1)

    def add_start(self, forward: np.ndarray, backward: np.ndarray):
        """Add the posterior at position 0 to the begin-state counts."""
        if self.start is None:
            raise ValueError("Begin-state counts are not tracked")
        log_gamma = forward[:, 0] + backward[:, 0]
        self.start += np.exp2(log_gamma - log2_sum(log_gamma))

    def add_pseudocounts(self, pseudocounts: np.ndarray):
        """Add prior counts to A before normalization."""
        self.transitions += pseudocounts
        self.transition_totals += pseudocounts.sum(axis=1)
