"""Concrete emission models."""

from phylohmm.models.categorical import CategoricalEmissions, sample_categorical, train_categorical
from phylohmm.models.tabulated import TabulatedEmissions
