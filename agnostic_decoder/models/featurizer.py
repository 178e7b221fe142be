"""
Dual-pathway featurizer for the agnostic brain decoder.
Splits each channel at its midpoint into phonetic and semantic halves.
"""

from typing import List, Sequence, Tuple

import numpy as np

from .band_power import ArrayLike, BandPowerExtractor, as_channel_array
from ..utils.error_handling import InvalidInputError


def split_channel(samples: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """Split one channel at floor(len / 2); the second half gets any odd sample"""
    samples = as_channel_array(samples)
    if samples.ndim != 1:
        raise InvalidInputError(
            f"channel must be one-dimensional, got shape {samples.shape}"
        )
    midpoint = len(samples) // 2
    return samples[:midpoint], samples[midpoint:]


class DualPathwayFeaturizer:
    """
    Builds the phonetic and semantic feature vectors of a raw sample.

    Phonetic features come from the first half of every channel, semantic
    features from the second half. Both vectors have length
    ``num_channels * num_bands``.
    """

    def __init__(self, extractor: BandPowerExtractor):
        self.extractor = extractor

    def _split(self, raw_sample: Sequence[ArrayLike]) -> Tuple[List[np.ndarray], List[np.ndarray]]:
        first_halves, second_halves = [], []
        for channel in raw_sample:
            first, second = split_channel(channel)
            first_halves.append(first)
            second_halves.append(second)
        return first_halves, second_halves

    def featurize_phonetic(self, raw_sample: Sequence[ArrayLike]) -> np.ndarray:
        """Feature vector of the first half of every channel"""
        first_halves, _ = self._split(raw_sample)
        return self.extractor.extract_channels(first_halves)

    def featurize_semantic(self, raw_sample: Sequence[ArrayLike]) -> np.ndarray:
        """Feature vector of the second half of every channel"""
        _, second_halves = self._split(raw_sample)
        return self.extractor.extract_channels(second_halves)

    def featurize(self, raw_sample: Sequence[ArrayLike]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Featurize both pathways with a single split.

        Args:
            raw_sample: Sequence of channels, each [num_samples]

        Returns:
            (phonetic_features, semantic_features), each [num_channels * num_bands]
        """
        first_halves, second_halves = self._split(raw_sample)
        return (
            self.extractor.extract_channels(first_halves),
            self.extractor.extract_channels(second_halves),
        )

    def feature_dim(self, num_channels: int) -> int:
        """Length of either pathway's feature vector"""
        return num_channels * self.extractor.num_bands
