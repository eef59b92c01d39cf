"""
Shared pytest fixtures for phylohmm tests.
"""
import pytest
import numpy as np

from phylohmm.core.hmm import HMM
from phylohmm.core.samples import SampleSet
from phylohmm.models.categorical import CategoricalEmissions, sample_categorical


TRUE_TRANSMAT = np.array([[0.9, 0.1], [0.2, 0.8]])
TRUE_EMISSIONPROB = np.array([
    [0.95, 0.05],  # State 0: mostly symbol 0
    [0.10, 0.90],  # State 1: mostly symbol 1
])


class FixedCategoricalEmissions(CategoricalEmissions):
    """Categorical model that takes part in re-estimation but never changes."""

    def __init__(self, emissionprob):
        super().__init__(emissionprob)
        self.refits = 0

    def estimate_state_models(self, data, counts, n_categories):
        self.refits += 1


class CountingEmissions(CategoricalEmissions):
    """Categorical model that counts compute_emissions() calls."""

    def __init__(self, emissionprob):
        super().__init__(emissionprob)
        self.calls = 0

    def compute_emissions(self, scores, data, sample, length):
        self.calls += 1
        super().compute_emissions(scores, data, sample, length)


@pytest.fixture
def true_transmat():
    return TRUE_TRANSMAT.copy()


@pytest.fixture
def true_emissionprob():
    return TRUE_EMISSIONPROB.copy()


@pytest.fixture
def three_state_case():
    """
    Hand-built 3-state HMM with a 5-position emission table.

    Returns (hmm, emission_probs) where emission_probs[k, i] is the
    probability of the observation at position i under state k.
    """
    hmm = HMM(
        [[0.7, 0.2, 0.1],
         [0.3, 0.5, 0.2],
         [0.1, 0.3, 0.6]],
        startprob=[0.5, 0.3, 0.2],
    )
    emission_probs = np.array([
        [0.6, 0.1, 0.2, 0.7, 0.3],
        [0.3, 0.6, 0.2, 0.2, 0.3],
        [0.1, 0.3, 0.6, 0.1, 0.4],
    ])
    return hmm, emission_probs


@pytest.fixture
def simulated_samples():
    """100 samples of length 50 drawn from the true two-state parameters."""
    rng = np.random.default_rng(2024)
    sequences = [
        sample_categorical(TRUE_TRANSMAT, TRUE_EMISSIONPROB, 50, rng=rng)[1]
        for _ in range(100)
    ]
    return SampleSet.from_sequences(sequences)


@pytest.fixture
def long_sample():
    """One sample of length 20000 drawn from the true two-state parameters."""
    rng = np.random.default_rng(7)
    _, symbols = sample_categorical(TRUE_TRANSMAT, TRUE_EMISSIONPROB, 20000, rng=rng)
    return SampleSet(symbols)


@pytest.fixture
def short_samples():
    """A few short symbol sequences for quick training runs."""
    return SampleSet.from_sequences([
        np.array([0, 0, 0, 1, 1, 1, 1, 0, 0, 0, 0, 1]),
        np.array([1, 1, 1, 1, 0, 0]),
        np.array([0, 1, 0, 0, 0, 1, 1, 1, 1]),
    ])


@pytest.fixture
def fixed_model(true_emissionprob):
    return FixedCategoricalEmissions(true_emissionprob)


@pytest.fixture
def counting_model(true_emissionprob):
    return CountingEmissions(true_emissionprob)


def total_log_likelihood(hmm, model, samples):
    """Sum of log2 sample likelihoods under hmm and model."""
    total = 0.0
    for s, length in enumerate(samples.lengths):
        scores = np.empty((hmm.n_states, length))
        model.compute_emissions(scores, samples, s, length)
        total += hmm.score(scores, length)
    return total
