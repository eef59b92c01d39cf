"""
phylohmm - EM training for hidden Markov models with pluggable emission
models (categorical symbols, phylogenetic column likelihoods, ...).
"""

__version__ = "1.0.0"

from phylohmm.core.hmm import HMM
from phylohmm.core.samples import SampleSet
from phylohmm.core.model import EmissionModel
from phylohmm.training.config import EMConfig
from phylohmm.training.em import EMTrainer, train_by_em
from phylohmm.models.categorical import CategoricalEmissions, train_categorical
from phylohmm.models.tabulated import TabulatedEmissions
