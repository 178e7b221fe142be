"""
Agnostic Brain Decoder: multi-channel biosignal windows to words

Decodes short signal windows into a vocabulary word through a phonetic and a
semantic classification pathway, then grounds the word in a dictionary
definition and an abstract concept.
"""

__version__ = "0.1.0"
__author__ = "Agnostic Decoder Team"

from .models import *
from .label_codec import LabelCodec
from .grounding import ConceptGrounder, cosine_similarity
from .definition_lookup import DefinitionLookup
from .decoder import AgnosticBrainDecoder, DecoderConfig, PredictionResult
from .checkpoint_manager import CheckpointManager

__all__ = [
    "LabelCodec",
    "ConceptGrounder",
    "cosine_similarity",
    "DefinitionLookup",
    "AgnosticBrainDecoder",
    "DecoderConfig",
    "PredictionResult",
    "CheckpointManager",
    "FrequencyBand",
    "BandPowerExtractor",
    "DualPathwayFeaturizer",
    "PathwayClassifier",
    "DualClassifierEnsemble",
    "ScoreDistribution",
]
