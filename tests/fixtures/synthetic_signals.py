"""
Synthetic multi-channel signal generation for testing the decoder.
Each word gets its own amplitude scale so classes are separable by band power.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np


@dataclass
class SyntheticWindow:
    """Container for one synthetic training window"""
    channels: np.ndarray  # [num_channels, num_samples]
    word: str
    amplitude: float


class SyntheticSignalGenerator:
    """Generate word-labelled signal windows with word-specific power"""

    def __init__(
        self,
        words: Sequence[str] = ("focus", "relax", "think"),
        num_channels: int = 4,
        num_samples: int = 200,
        random_seed: int = 42,
        amplitudes: Optional[Dict[str, float]] = None
    ):
        """Initialize generator

        Args:
            words: Vocabulary to draw labels from
            num_channels: Channels per window
            num_samples: Samples per channel
            random_seed: Random seed for reproducibility
            amplitudes: Optional per-word standard deviation; defaults to 1, 3, 9, ...
        """
        self.rng = np.random.RandomState(random_seed)
        self.words = list(words)
        self.num_channels = num_channels
        self.num_samples = num_samples
        self.amplitudes = amplitudes or {
            word: 3.0 ** i for i, word in enumerate(self.words)
        }

    def generate_window(self, word: str) -> SyntheticWindow:
        """Gaussian window whose power is set by the word's amplitude"""
        amplitude = self.amplitudes[word]
        channels = self.rng.normal(
            0.0, amplitude, size=(self.num_channels, self.num_samples)
        )
        return SyntheticWindow(channels=channels, word=word, amplitude=amplitude)

    def generate_dataset(self, windows_per_word: int = 10) -> Tuple[List[np.ndarray], List[str]]:
        """Interleaved dataset: word order repeats every len(words) windows"""
        raw_samples, labels = [], []
        for _ in range(windows_per_word):
            for word in self.words:
                window = self.generate_window(word)
                raw_samples.append(window.channels)
                labels.append(word)
        return raw_samples, labels


def constant_window(value: float, num_channels: int, num_samples: int) -> np.ndarray:
    """Window with every sample equal to ``value``"""
    return np.full((num_channels, num_samples), value, dtype=np.float64)
