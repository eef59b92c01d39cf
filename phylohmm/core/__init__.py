"""Core HMM recursions, sample storage and the emission model interface."""

from phylohmm.core.hmm import HMM, log2_sum
from phylohmm.core.samples import SampleSet
from phylohmm.core.model import EmissionModel, get_capability, supports_state_reestimation
