"""
Emission model backed by a precomputed likelihood table.

In a phylo-HMM the emission score of a column depends only on which
distinct column pattern it is. Scoring each distinct pattern once per
state (for example with a tree model) gives an (n_states, n_patterns) table,
and samples become arrays of pattern indices. The table is fixed, so
training with this model re-estimates transitions only.
"""

import numpy as np
from typing import Any


class TabulatedEmissions:
    """
    Emission scores looked up per observation category.

    Args:
        log_likelihoods: (n_states, n_categories) log2 likelihood of each
            category under each state
    """

    def __init__(self, log_likelihoods):
        log_likelihoods = np.array(log_likelihoods, dtype=np.float64)
        if log_likelihoods.ndim != 2:
            raise ValueError(f"log_likelihoods must be 2-D, got shape {log_likelihoods.shape}")
        self.log_likelihoods = log_likelihoods

    @classmethod
    def from_probabilities(cls, likelihoods) -> 'TabulatedEmissions':
        with np.errstate(divide='ignore'):
            return cls(np.log2(np.asarray(likelihoods, dtype=np.float64)))

    @property
    def n_states(self) -> int:
        return self.log_likelihoods.shape[0]

    def compute_emissions(self, scores: np.ndarray, data: Any, sample: int, length: int):
        idx = np.asarray(data[sample][:length], dtype=np.intp)
        scores[:, :length] = self.log_likelihoods[:, idx]
