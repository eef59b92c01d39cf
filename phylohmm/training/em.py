"""
EM (Baum-Welch) training driver.

Each iteration scores every sample with the emission model, runs the
forward and backward recursions, accumulates expected transition and
emission counts, then performs one global parameter update. Training stops
when the total log2 likelihood improves by no more than the convergence
threshold; the statistics of that last iteration are not applied.
"""

import itertools
import time
import warnings
from typing import Any, Callable, Optional, Sequence, TextIO

import numpy as np
from tqdm import tqdm

from phylohmm.core.hmm import HMM
from phylohmm.core.model import EmissionModel, get_capability, supports_state_reestimation
from phylohmm.training.config import EMConfig
from phylohmm.training.monitor import ConvergenceMonitor, ConvergenceWarning, TrainingStatus
from phylohmm.training.stats import SufficientStats
from phylohmm.training.workspace import EMWorkspace


def default_log_function(logf: TextIO, total_logl: float, hmm: HMM,
                         data: Any, show_header: bool):
    """Write the log likelihood and every transition probability (row-major)."""
    n = hmm.n_states
    if show_header:
        header = ''.join(f"({i},{j})\t" for i in range(n) for j in range(n))
        print(f"\nlogl\t{header}", file=logf)

    values = ''.join(f"{p:f}\t" for p in hmm.transmat_.ravel())
    print(f"{total_logl:f}\t{values}", file=logf)
    logf.flush()


def _check_sample_lens(sample_lens: Sequence[int]) -> np.ndarray:
    sample_lens = np.asarray(sample_lens, dtype=np.int64)
    if sample_lens.ndim != 1 or len(sample_lens) == 0:
        raise ValueError("At least one sample length is required")
    if np.any(sample_lens < 1):
        raise ValueError("Every sample must have length >= 1")
    return sample_lens


def _check_pseudocounts(pseudocounts, n_states: int) -> Optional[np.ndarray]:
    if pseudocounts is None:
        return None
    pseudocounts = np.asarray(pseudocounts, dtype=np.float64)
    if pseudocounts.shape != (n_states, n_states):
        raise ValueError(
            f"Pseudocounts must have shape ({n_states}, {n_states}), got {pseudocounts.shape}"
        )
    if np.any(pseudocounts < 0):
        raise ValueError("Pseudocounts must be non-negative")
    return pseudocounts


class EMTrainer:
    """
    Trains an HMM's transitions, and optionally its emission model, by EM.

    Args:
        model: Emission model (see phylohmm.core.model)
        config: Training options; defaults to EMConfig()
        estimate_transitions: Custom transition estimator (hmm, data, counts);
            overrides model.estimate_transitions
        log_function: Per-iteration log hook (logf, total_logl, hmm, data, is_first);
            overrides model.log_iteration
        logf: Log destination; nothing is logged when None
        verbose: Show a progress bar over iterations
        desc: Description for the progress bar

    Attributes set by fit():
        log_likelihood_: Final total log2 likelihood
        monitor_: ConvergenceMonitor with the per-iteration history
        status_: TrainingStatus the run ended in
        n_iter_: Number of iterations (likelihood evaluations)
        workspace_: The EMWorkspace used for the run
    """

    def __init__(self, model: Any, config: Optional[EMConfig] = None,
                 estimate_transitions: Optional[Callable] = None,
                 log_function: Optional[Callable] = None,
                 logf: Optional[TextIO] = None,
                 verbose: bool = False, desc: str = "EM"):
        if not isinstance(model, EmissionModel):
            raise ValueError(f"{type(model).__name__} does not provide compute_emissions()")

        self.model = model
        self.config = config if config is not None else EMConfig()
        self.estimate_transitions = (estimate_transitions or
                                     get_capability(model, 'estimate_transitions'))
        self.log_function = (log_function or
                             get_capability(model, 'log_iteration') or
                             default_log_function)
        self.logf = logf
        self.verbose = verbose
        self.desc = desc

        self.log_likelihood_: Optional[float] = None
        self.monitor_: Optional[ConvergenceMonitor] = None
        self.status_: Optional[TrainingStatus] = None
        self.n_iter_: int = 0
        self.workspace_: Optional[EMWorkspace] = None

    @property
    def reestimates_state_models(self) -> bool:
        return self.config.reestimate_state_models and supports_state_reestimation(self.model)

    def _observation_categories(self, data: Any, sample: int, length: int) -> np.ndarray:
        lookup = get_capability(self.model, 'observation_categories')
        if lookup is not None:
            return np.asarray(lookup(data, sample, length), dtype=np.intp)
        return np.fromiter(
            (self.model.observation_category(data, sample, i) for i in range(length)),
            dtype=np.intp, count=length,
        )

    def fit(self, hmm: HMM, data: Any, sample_lens: Sequence[int],
            pseudocounts=None) -> 'EMTrainer':
        """
        Train hmm (and the emission model) on data in place.

        Args:
            hmm: HMM whose transition matrix is re-estimated
            data: Opaque dataset handle passed to the model
            sample_lens: Length of each sample in data
            pseudocounts: Optional (N, N) prior transition counts

        Returns:
            self
        """
        sample_lens = _check_sample_lens(sample_lens)
        n_states = hmm.n_states
        pseudocounts = _check_pseudocounts(pseudocounts, n_states)
        config = self.config
        logf = self.logf

        do_state_models = self.reestimates_state_models
        n_categories = int(self.model.n_categories(data)) if do_state_models else None

        if not do_state_models and len(sample_lens) > 1:
            if np.any(sample_lens > sample_lens[0]):
                raise ValueError(
                    "Transition-only training reuses the first sample's emission table, "
                    f"which covers {sample_lens[0]} positions; every sample must be at most "
                    f"that long (longest is {sample_lens.max()})"
                )
            warnings.warn(
                "Transition-only training computes emissions once, from the first "
                f"sample; the other {len(sample_lens) - 1} sample(s) reuse that table. "
                "Pass a single aggregate sample to avoid this."
            )

        workspace = EMWorkspace(n_states, int(sample_lens.max()))
        stats = SufficientStats(n_states, n_categories, track_start=config.update_startprob)
        monitor = ConvergenceMonitor(config.threshold, config.max_iter)
        self.workspace_ = workspace
        self.monitor_ = monitor

        start_time = time.time()
        iterator = itertools.count(1)
        if self.verbose:
            iterator = tqdm(iterator, desc=self.desc, total=config.max_iter, leave=False)

        total_logl = -np.inf
        for iteration in iterator:
            # E-step
            total_logl = 0.0
            stats.reset()

            for s, length in enumerate(sample_lens):
                length = int(length)
                # Emissions are fixed unless state models are being refit
                if do_state_models or not workspace.emissions_cached:
                    workspace.compute_emissions(self.model, data, s, length)

                logp_fw, logp_bw = workspace.forward_backward(hmm, length)

                if abs(logp_fw - logp_bw) > config.fb_tolerance and logf is not None:
                    print("WARNING: forward and backward algorithms returned different total log\n"
                          f"probabilities ({logp_fw:f} and {logp_bw:f}, respectively).", file=logf)

                total_logl += logp_fw

                if do_state_models:
                    categories = self._observation_categories(data, s, length)
                    stats.add_emissions(workspace.forward, workspace.backward, length, categories)

                if stats.start is not None:
                    stats.add_start(workspace.forward, workspace.backward)

                stats.add_transitions(hmm.log_transmat, workspace.emissions,
                                      workspace.forward, workspace.backward,
                                      length, logp_fw)

            if not np.isfinite(total_logl):
                raise ValueError(
                    f"Total log likelihood is {total_logl} at iteration {iteration}; "
                    "some sample is impossible under the current parameters"
                )

            # Log before updating so the likelihood matches the printed parameters
            if logf is not None:
                self.log_function(logf, total_logl, hmm, data, iteration == 1)

            apply_update = monitor.update(total_logl)

            if self.verbose:
                iterator.set_postfix({'logl': f'{total_logl:.4f}',
                                      'delta': f'{monitor.delta:.2e}'})

            if not apply_update:
                break

            # M-step
            self._update_parameters(hmm, data, stats, pseudocounts, do_state_models, n_categories)

        if self.verbose:
            iterator.close()

        if logf is not None:
            print(f"\nNumber of iterations: {monitor.iter}\n"
                  f"Total time: {time.time() - start_time:.4f} sec.", file=logf)
            logf.flush()

        if monitor.status is TrainingStatus.MAX_ITER:
            warnings.warn(
                f"EM stopped after {monitor.iter} iterations without converging "
                f"(last delta {monitor.delta:.4g}, threshold {config.threshold})",
                ConvergenceWarning,
            )

        self.log_likelihood_ = float(total_logl)
        self.status_ = monitor.status
        self.n_iter_ = monitor.iter
        return self

    def _update_parameters(self, hmm: HMM, data: Any, stats: SufficientStats,
                           pseudocounts: Optional[np.ndarray],
                           do_state_models: bool, n_categories: Optional[int]):
        if pseudocounts is not None:
            stats.add_pseudocounts(pseudocounts)

        if self.estimate_transitions is not None:
            self.estimate_transitions(hmm, data, stats.transitions)
        else:
            hmm.transmat_[...] = stats.transitions / stats.transition_totals[:, np.newaxis]

        if stats.start is not None:
            hmm.startprob_[...] = stats.start / stats.start.sum()

        hmm.reset()

        if do_state_models:
            self.model.estimate_state_models(data, stats.emissions, n_categories)


def train_by_em(hmm: HMM, model: Any, data: Any, sample_lens: Sequence[int],
                pseudocounts=None,
                estimate_transitions: Optional[Callable] = None,
                log_function: Optional[Callable] = None,
                logf: Optional[TextIO] = None,
                config: Optional[EMConfig] = None,
                verbose: bool = False) -> float:
    """
    Train an HMM by EM and return the final total log2 likelihood.

    The HMM's transition matrix and, when the model supports re-estimation,
    the emission model are updated in place. See EMTrainer for arguments.
    """
    trainer = EMTrainer(model, config=config,
                        estimate_transitions=estimate_transitions,
                        log_function=log_function, logf=logf, verbose=verbose)
    return trainer.fit(hmm, data, sample_lens, pseudocounts=pseudocounts).log_likelihood_
