"""
Categorical (multinomial) emission model.

Each state emits one of n_categories discrete symbols. The model can be
refit from expected emission counts, so it supports full Baum-Welch training
of both transitions and emissions. Also provides a sampler for synthetic
data and a random-restart trainer that keeps the best run.
"""

import numpy as np
from typing import Any, List, Optional, TextIO, Tuple
from tqdm import tqdm

from phylohmm.core.hmm import HMM
from phylohmm.core.samples import SampleSet
from phylohmm.training.config import EMConfig
from phylohmm.training.em import train_by_em


class CategoricalEmissions:
    """
    Per-state discrete emission distributions.

    Data is anything indexable by sample number that yields an integer
    symbol array (a SampleSet or a list of arrays).

    Args:
        emissionprob: (n_states, n_categories) emission probabilities
    """

    def __init__(self, emissionprob):
        emissionprob = np.array(emissionprob, dtype=np.float64)
        if emissionprob.ndim != 2:
            raise ValueError(f"emissionprob must be 2-D, got shape {emissionprob.shape}")
        self.emissionprob_: np.ndarray = emissionprob
        self._log_emissionprob: Optional[np.ndarray] = None
        self._compute_log_probs()

    @property
    def n_states(self) -> int:
        return self.emissionprob_.shape[0]

    def _compute_log_probs(self):
        with np.errstate(divide='ignore'):
            self._log_emissionprob = np.log2(self.emissionprob_)

    def compute_emissions(self, scores: np.ndarray, data: Any, sample: int, length: int):
        seq = np.asarray(data[sample][:length], dtype=np.intp)
        scores[:, :length] = self._log_emissionprob[:, seq]

    def n_categories(self, data: Any) -> int:
        return self.emissionprob_.shape[1]

    def observation_category(self, data: Any, sample: int, position: int) -> int:
        return int(data[sample][position])

    def observation_categories(self, data: Any, sample: int, length: int) -> np.ndarray:
        return np.asarray(data[sample][:length], dtype=np.intp)

    def estimate_state_models(self, data: Any, counts: np.ndarray, n_categories: int):
        """Refit emission probabilities from expected counts (rows normalized)."""
        sums = counts.sum(axis=1, keepdims=True)
        sums = np.where(sums == 0, 1, sums)
        emissionprob = counts / sums
        emissionprob = np.clip(emissionprob, 1e-10, 1.0)
        emissionprob /= emissionprob.sum(axis=1, keepdims=True)

        self.emissionprob_ = emissionprob
        self._compute_log_probs()


def sample_categorical(transmat: np.ndarray, emissionprob: np.ndarray, length: int,
                       startprob: Optional[np.ndarray] = None,
                       rng: Optional[np.random.Generator] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw one state path and symbol sequence from a categorical HMM.

    Returns:
        states: (length,) hidden states
        symbols: (length,) emitted symbols
    """
    if rng is None:
        rng = np.random.default_rng()
    transmat = np.asarray(transmat)
    emissionprob = np.asarray(emissionprob)
    n_states, n_categories = emissionprob.shape
    if startprob is None:
        startprob = np.full(n_states, 1.0 / n_states)

    states = np.empty(length, dtype=np.int64)
    symbols = np.empty(length, dtype=np.int64)
    state = rng.choice(n_states, p=startprob)
    for i in range(length):
        if i > 0:
            state = rng.choice(n_states, p=transmat[state])
        states[i] = state
        symbols[i] = rng.choice(n_categories, p=emissionprob[state])
    return states, symbols


def train_categorical(samples, n_states: int, n_categories: int,
                      n_restarts: int = 10, seed: int = 42,
                      config: Optional[EMConfig] = None,
                      pseudocounts=None,
                      logf: Optional[TextIO] = None,
                      verbose: bool = False) -> Tuple[HMM, CategoricalEmissions, List[float]]:
    """
    Train categorical HMMs from several random initializations and return the best.

    Args:
        samples: SampleSet or list of symbol arrays
        n_states: Number of hidden states
        n_categories: Number of distinct symbols
        n_restarts: Number of random initializations
        seed: Base random seed (restart i uses seed + i)
        config: EM options
        pseudocounts: Optional (n_states, n_states) prior transition counts
        logf: Per-iteration log destination
        verbose: Show a progress bar over restarts

    Returns:
        (best_hmm, best_model, final log2 likelihood of every restart)
    """
    if not isinstance(samples, SampleSet):
        samples = SampleSet.from_sequences(samples)
    if n_restarts < 1:
        raise ValueError(f"n_restarts must be >= 1, got {n_restarts}")

    best_hmm = None
    best_model = None
    best_logl = float('-inf')
    all_logls = []

    pbar = tqdm(range(n_restarts), desc="Training restarts", disable=not verbose)
    for i in pbar:
        rng = np.random.default_rng(seed + i)

        # Random initialization
        hmm = HMM(rng.dirichlet(np.ones(n_states), n_states))
        model = CategoricalEmissions(rng.dirichlet(np.ones(n_categories), n_states))

        logl = train_by_em(hmm, model, samples, samples.lengths,
                           pseudocounts=pseudocounts, logf=logf, config=config)
        all_logls.append(logl)

        if logl > best_logl:
            best_logl = logl
            best_hmm = hmm
            best_model = model

        pbar.set_postfix({'best_logl': f'{best_logl:.2f}'})

    return best_hmm, best_model, all_logls
