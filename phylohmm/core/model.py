"""
Emission model capability interface.

The EM trainer only needs compute_emissions(). The remaining members are
optional and looked up by name; a model that lacks them is trained in
transition-only mode, keeps the default transition update, or uses the
default log function:

    n_categories(data) -> int
    observation_category(data, sample, position) -> int
    observation_categories(data, sample, length) -> int array   (vectorized form)
    estimate_state_models(data, counts, n_categories) -> None
    estimate_transitions(hmm, data, counts) -> None
    log_iteration(logf, total_logl, hmm, data, is_first) -> None
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class EmissionModel(Protocol):
    """Per-state emission models, seen by the trainer as one opaque object."""

    def compute_emissions(self, scores: np.ndarray, data: Any,
                          sample: int, length: int) -> None:
        """Fill scores[state, position] with log2 emission scores for position < length."""
        ...


def get_capability(model: Any, name: str) -> Optional[Callable]:
    """Return model.<name> if it exists and is callable, else None."""
    member = getattr(model, name, None)
    return member if callable(member) else None


def supports_state_reestimation(model: Any) -> bool:
    """True if the model can count observation categories and refit itself."""
    has_lookup = (get_capability(model, 'observation_category') is not None or
                  get_capability(model, 'observation_categories') is not None)
    return (has_lookup and
            get_capability(model, 'n_categories') is not None and
            get_capability(model, 'estimate_state_models') is not None)
