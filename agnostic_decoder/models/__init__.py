"""
Decoder model components.
"""

from .band_power import BandPowerExtractor, FrequencyBand
from .featurizer import DualPathwayFeaturizer
from .pathway_classifier import PathwayClassifier
from .ensemble import DualClassifierEnsemble, ScoreDistribution, fuse, argmax

__all__ = [
    "BandPowerExtractor",
    "FrequencyBand",
    "DualPathwayFeaturizer",
    "PathwayClassifier",
    "DualClassifierEnsemble",
    "ScoreDistribution",
    "fuse",
    "argmax"
]
