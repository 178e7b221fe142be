"""
Weighted band-power feature extraction for the agnostic brain decoder.
Turns raw channel samples into one power-proxy feature per frequency band.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np
import torch

from ..utils.error_handling import ConfigurationError, SignalValidator


logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray, torch.Tensor]

DEFAULT_BANDS: Dict[str, Tuple[float, float]] = {
    'delta': (0.5, 4.0),
    'theta': (4.0, 8.0),
    'alpha': (8.0, 13.0),
    'beta': (13.0, 30.0),
    'gamma': (30.0, 100.0),
}


@dataclass(frozen=True)
class FrequencyBand:
    """Named frequency interval used to weight the power proxy"""
    name: str
    low_hz: float
    high_hz: float

    def __post_init__(self):
        if self.low_hz >= self.high_hz:
            raise ConfigurationError(
                f"Band '{self.name}' must satisfy low_hz < high_hz, "
                f"got [{self.low_hz}, {self.high_hz}]"
            )

    @property
    def center_frequency(self) -> float:
        return (self.low_hz + self.high_hz) / 2


def bands_from_mapping(mapping: Mapping[str, Sequence[float]]) -> List[FrequencyBand]:
    """Build bands from a ``{name: [low_hz, high_hz]}`` mapping, keeping key order"""
    bands = []
    for name, limits in mapping.items():
        if len(limits) != 2:
            raise ConfigurationError(
                f"Band '{name}' needs exactly [low_hz, high_hz], got {list(limits)}"
            )
        low_hz, high_hz = limits
        bands.append(FrequencyBand(str(name), float(low_hz), float(high_hz)))
    return bands


def as_channel_array(samples: ArrayLike) -> np.ndarray:
    """Convert one channel of samples to a float64 numpy array"""
    if isinstance(samples, torch.Tensor):
        samples = samples.detach().cpu().numpy()
    return np.asarray(samples, dtype=np.float64)


class BandPowerExtractor:
    """
    Power-proxy feature extractor.

    The mean squared amplitude of the whole channel is computed once and
    weighted by each band's center frequency. The signal is not band-limited,
    so bands differ only by their weight. A real spectral filter stage would
    have to be added in front of this extractor as a separate step.
    """

    def __init__(self, bands: Sequence[FrequencyBand]):
        """
        Initialize extractor.

        Args:
            bands: Ordered frequency bands, one output feature each
        """
        self.bands = tuple(bands)
        self._weights = np.array(
            [band.center_frequency for band in self.bands],
            dtype=np.float64
        )

    @property
    def num_bands(self) -> int:
        return len(self.bands)

    def channel_power(self, channel_samples: ArrayLike) -> float:
        """Mean squared amplitude of one channel"""
        samples = as_channel_array(channel_samples)
        SignalValidator.validate_channel(samples)
        return float(np.mean(samples * samples))

    def extract(self, channel_samples: ArrayLike) -> np.ndarray:
        """
        Extract weighted band power for one channel.

        Args:
            channel_samples: Raw amplitude readings [num_samples]

        Returns:
            Feature array [num_bands], ordered like ``self.bands``
        """
        power = self.channel_power(channel_samples)
        return power * self._weights

    def extract_channels(self, channels: Sequence[ArrayLike]) -> np.ndarray:
        """
        Extract and concatenate features for every channel in order.

        Args:
            channels: Sequence of channels, each [num_samples]

        Returns:
            Flat feature array [num_channels * num_bands]
        """
        if len(channels) == 0:
            return np.zeros(0, dtype=np.float32)

        features = [self.extract(channel) for channel in channels]
        return np.concatenate(features).astype(np.float32)

    def __repr__(self) -> str:
        names = ', '.join(band.name for band in self.bands)
        return f'BandPowerExtractor(bands=[{names}])'
