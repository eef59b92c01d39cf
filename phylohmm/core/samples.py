"""Concatenated storage for variable-length observation samples."""

import numpy as np
from typing import Optional, Sequence


class SampleSet:
    """
    Training samples stored back to back in one array.

    Indexing with a sample number returns a view of that sample, so a
    SampleSet can be passed anywhere a list of sequences is expected.

    Args:
        X: Concatenated observations, shape (T,) or (T, 1)
        lengths: Length of each sample; defaults to a single sample
    """

    def __init__(self, X: np.ndarray, lengths: Optional[Sequence[int]] = None):
        X = np.asarray(X)
        if X.ndim == 2 and X.shape[1] == 1:
            X = X.ravel()
        if X.ndim != 1:
            raise ValueError(f"Observations must be 1-D, got shape {X.shape}")

        if lengths is None:
            lengths = [len(X)]
        lengths = np.asarray(lengths, dtype=np.int64)
        if lengths.ndim != 1 or len(lengths) == 0:
            raise ValueError("At least one sample length is required")
        if np.any(lengths < 1):
            raise ValueError("Every sample must have length >= 1")
        if lengths.sum() != len(X):
            raise ValueError(
                f"Sample lengths sum to {lengths.sum()}, but {len(X)} observations were given"
            )

        self.X = X
        self.lengths = lengths
        self.offsets = np.concatenate(([0], np.cumsum(lengths)[:-1]))

    @classmethod
    def from_sequences(cls, sequences) -> 'SampleSet':
        sequences = [np.asarray(seq).ravel() for seq in sequences]
        if not sequences:
            raise ValueError("At least one sample is required")
        return cls(np.concatenate(sequences), [len(seq) for seq in sequences])

    def __len__(self) -> int:
        return len(self.lengths)

    def __getitem__(self, sample: int) -> np.ndarray:
        start = self.offsets[sample]
        return self.X[start:start + self.lengths[sample]]

    def __iter__(self):
        for s in range(len(self)):
            yield self[s]

    @property
    def total_length(self) -> int:
        return int(self.lengths.sum())
