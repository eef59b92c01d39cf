"""
phylohmm HMM module

Provides:
1. N-state HMM with begin and optional end probabilities
2. Forward, backward and Viterbi recursions over precomputed emission tables
3. Numba JIT compilation of the recursions

All log probabilities in this package are base 2. Emission scores are
supplied by the caller as an (n_states, >= length) table, so the same HMM
works with any emission model (categorical symbols, phylogenetic column
likelihoods, ...).
"""

import math
import numpy as np
from typing import Optional, Tuple
from numba import jit
from scipy.special import logsumexp


LN2 = math.log(2.0)


# =============================================================================
# Numba JIT-compiled HMM recursions
# =============================================================================

@jit(nopython=True, cache=False)
def _log2_add(a, b):
    """log2(2^a + 2^b) for two scalars."""
    if a == -np.inf:
        return b
    if b == -np.inf:
        return a
    if a >= b:
        return a + math.log1p(math.exp((b - a) * LN2)) / LN2
    return b + math.log1p(math.exp((a - b) * LN2)) / LN2


@jit(nopython=True, cache=False)
def _forward_numba(log_startprob, log_transmat, log_endprob, emissions, length, alpha):
    """
    Numba-compiled forward recursion.

    Args:
        log_startprob: (N,) log2 begin probabilities
        log_transmat: (N, N) log2 transition matrix
        log_endprob: (N,) log2 end probabilities (zeros when there is no end state)
        emissions: (N, >= length) log2 emission scores
        length: Number of positions to process
        alpha: (N, >= length) output table, filled in place

    Returns:
        log_prob: log2 probability of the sample
    """
    n = log_transmat.shape[0]

    for k in range(n):
        alpha[k, 0] = log_startprob[k] + emissions[k, 0]

    for i in range(1, length):
        for l in range(n):
            acc = -np.inf
            for k in range(n):
                acc = _log2_add(acc, alpha[k, i - 1] + log_transmat[k, l])
            alpha[l, i] = acc + emissions[l, i]

    log_prob = -np.inf
    for k in range(n):
        log_prob = _log2_add(log_prob, alpha[k, length - 1] + log_endprob[k])
    return log_prob


@jit(nopython=True, cache=False)
def _backward_numba(log_startprob, log_transmat, log_endprob, emissions, length, beta):
    """
    Numba-compiled backward recursion.

    Same arguments as _forward_numba; fills beta in place and returns the
    log2 probability of the sample computed from the begin state.
    """
    n = log_transmat.shape[0]

    for k in range(n):
        beta[k, length - 1] = log_endprob[k]

    for i in range(length - 2, -1, -1):
        for k in range(n):
            acc = -np.inf
            for l in range(n):
                acc = _log2_add(acc, log_transmat[k, l] + emissions[l, i + 1] + beta[l, i + 1])
            beta[k, i] = acc

    log_prob = -np.inf
    for k in range(n):
        log_prob = _log2_add(log_prob, log_startprob[k] + emissions[k, 0] + beta[k, 0])
    return log_prob


@jit(nopython=True, cache=False)
def _viterbi_numba(log_startprob, log_transmat, log_endprob, emissions, length):
    """
    Numba-compiled Viterbi for an N-state HMM.

    Returns:
        path: Most likely state sequence
        log_prob: log2 probability of that path
    """
    n = log_transmat.shape[0]
    viterbi = np.empty((n, length))
    backpointer = np.zeros((n, length), dtype=np.int64)

    for k in range(n):
        viterbi[k, 0] = log_startprob[k] + emissions[k, 0]

    for i in range(1, length):
        for l in range(n):
            best = -np.inf
            arg = 0
            for k in range(n):
                cand = viterbi[k, i - 1] + log_transmat[k, l]
                if cand > best:
                    best = cand
                    arg = k
            viterbi[l, i] = best + emissions[l, i]
            backpointer[l, i] = arg

    log_prob = -np.inf
    last = 0
    for k in range(n):
        cand = viterbi[k, length - 1] + log_endprob[k]
        if cand > log_prob:
            log_prob = cand
            last = k

    path = np.zeros(length, dtype=np.int64)
    path[length - 1] = last
    for i in range(length - 2, -1, -1):
        path[i] = backpointer[path[i + 1], i + 1]
    return path, log_prob


# =============================================================================
# HMM class
# =============================================================================

class HMM:
    """
    Discrete-state HMM whose emissions are supplied externally.

    Holds the transition matrix, the begin probabilities and optional end
    probabilities. Log2 versions are cached; call reset() after changing
    any of the probability arrays.
    """

    def __init__(self, transmat, startprob=None, endprob=None):
        transmat = np.array(transmat, dtype=np.float64)
        if transmat.ndim != 2 or transmat.shape[0] != transmat.shape[1]:
            raise ValueError(f"Transition matrix must be square, got shape {transmat.shape}")
        if transmat.shape[0] == 0:
            raise ValueError("HMM must have at least one state")
        n_states = transmat.shape[0]

        self.transmat_: np.ndarray = transmat
        if startprob is None:
            self.startprob_: np.ndarray = np.full(n_states, 1.0 / n_states)
        else:
            self.startprob_ = np.array(startprob, dtype=np.float64)
        self.endprob_: Optional[np.ndarray] = (
            None if endprob is None else np.array(endprob, dtype=np.float64)
        )

        for name, vec in (('startprob', self.startprob_), ('endprob', self.endprob_)):
            if vec is not None and vec.shape != (n_states,):
                raise ValueError(f"{name} must have shape ({n_states},), got {vec.shape}")

        # Log versions
        self._log_startprob: Optional[np.ndarray] = None
        self._log_transmat: Optional[np.ndarray] = None
        self._log_endprob: Optional[np.ndarray] = None
        self.reset()

    @property
    def n_states(self) -> int:
        return self.transmat_.shape[0]

    @property
    def log_transmat(self) -> np.ndarray:
        return self._log_transmat

    @property
    def log_startprob(self) -> np.ndarray:
        return self._log_startprob

    def reset(self):
        """Recompute cached log2 probabilities after a parameter change."""
        with np.errstate(divide='ignore'):  # log(0) -> -inf
            self._log_transmat = np.log2(self.transmat_)
            self._log_startprob = np.log2(self.startprob_)
            if self.endprob_ is None:
                self._log_endprob = np.zeros(self.n_states)
            else:
                self._log_endprob = np.log2(self.endprob_)

    def transition_score(self, k: int, l: int) -> float:
        """log2 probability of the k -> l transition."""
        return self._log_transmat[k, l]

    def copy(self) -> 'HMM':
        return HMM(self.transmat_.copy(), self.startprob_.copy(),
                   None if self.endprob_ is None else self.endprob_.copy())

    def _check_table(self, emissions: np.ndarray, length: int) -> np.ndarray:
        emissions = np.asarray(emissions, dtype=np.float64)
        if length < 1:
            raise ValueError(f"Sample length must be >= 1, got {length}")
        if emissions.ndim != 2 or emissions.shape[0] != self.n_states:
            raise ValueError(
                f"Emission table must have {self.n_states} rows, got shape {emissions.shape}"
            )
        if emissions.shape[1] < length:
            raise ValueError(
                f"Emission table has {emissions.shape[1]} columns, need at least {length}"
            )
        return emissions

    def _output_table(self, out: Optional[np.ndarray], length: int) -> np.ndarray:
        if out is None:
            return np.empty((self.n_states, length))
        if out.shape[0] != self.n_states or out.shape[1] < length:
            raise ValueError(f"Output table of shape {out.shape} is too small")
        return out

    def forward(self, emissions: np.ndarray, length: int,
                out: Optional[np.ndarray] = None) -> Tuple[float, np.ndarray]:
        """
        Forward algorithm in log2 space.

        Args:
            emissions: (n_states, >= length) log2 emission scores
            length: Number of positions in the sample
            out: Optional preallocated table to fill

        Returns:
            log_prob: log2 probability of the sample
            alpha: Forward scores, (n_states, >= length)
        """
        emissions = self._check_table(emissions, length)
        alpha = self._output_table(out, length)
        log_prob = _forward_numba(self._log_startprob, self._log_transmat,
                                  self._log_endprob, emissions, length, alpha)
        return log_prob, alpha

    def backward(self, emissions: np.ndarray, length: int,
                 out: Optional[np.ndarray] = None) -> Tuple[float, np.ndarray]:
        """
        Backward algorithm in log2 space.

        Returns:
            log_prob: log2 probability of the sample (should match forward)
            beta: Backward scores, (n_states, >= length)
        """
        emissions = self._check_table(emissions, length)
        beta = self._output_table(out, length)
        log_prob = _backward_numba(self._log_startprob, self._log_transmat,
                                   self._log_endprob, emissions, length, beta)
        return log_prob, beta

    def viterbi(self, emissions: np.ndarray, length: int) -> Tuple[np.ndarray, float]:
        """
        Most likely state path.

        Returns:
            path: State sequence, shape (length,)
            log_prob: log2 probability of the path
        """
        emissions = self._check_table(emissions, length)
        return _viterbi_numba(self._log_startprob, self._log_transmat,
                              self._log_endprob, emissions, length)

    def posteriors(self, emissions: np.ndarray, length: int) -> np.ndarray:
        """
        Posterior probabilities P(state | sample) at each position.

        Returns:
            (n_states, length) array; each column sums to 1.0
        """
        _, alpha = self.forward(emissions, length)
        _, beta = self.backward(emissions, length)

        log_gamma = alpha[:, :length] + beta[:, :length]
        log_gamma -= log2_sum(log_gamma, axis=0, keepdims=True)
        return np.exp2(log_gamma)

    def score(self, emissions: np.ndarray, length: int) -> float:
        """log2 probability of a sample."""
        log_prob, _ = self.forward(emissions, length)
        return log_prob


def log2_sum(a: np.ndarray, axis: Optional[int] = None,
             keepdims: bool = False) -> np.ndarray:
    """Numerically stable log2(sum(2^a)); all -inf inputs give -inf."""
    with np.errstate(divide='ignore'):
        return logsumexp(np.asarray(a) * LN2, axis=axis, keepdims=keepdims) / LN2
