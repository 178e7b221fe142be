"""
Agnostic brain decoder integrating all components.
Decodes a multi-channel signal window into a word, its definition and its concept.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import requests
from omegaconf import DictConfig, OmegaConf

from .definition_lookup import (
    DEFAULT_DEFINITION_URL,
    DEFINITION_NOT_FOUND,
    DefinitionLookup,
)
from .grounding import DEFAULT_CONCEPTS, ConceptGrounder, load_embeddings
from .label_codec import LabelCodec
from .models.band_power import (
    DEFAULT_BANDS,
    ArrayLike,
    BandPowerExtractor,
    FrequencyBand,
    bands_from_mapping,
)
from .models.ensemble import DualClassifierEnsemble, ScoreDistribution, argmax
from .models.featurizer import DualPathwayFeaturizer
from .models.pathway_classifier import ProgressCallback
from .utils.error_handling import (
    DecoderError,
    ErrorHandler,
    InternalInconsistencyError,
    InvalidInputError,
    LookupFailure,
    NotTrainedError,
    UnknownLabelError,
    validate_decoder_config,
)


logger = logging.getLogger(__name__)

RawSample = Sequence[ArrayLike]


@dataclass
class DecoderConfig:
    """Configuration for the agnostic brain decoder"""
    # Signal settings
    bands: List[FrequencyBand] = field(
        default_factory=lambda: bands_from_mapping(DEFAULT_BANDS)
    )
    sampling_rate: float = 1000.0

    # Classifier settings
    hidden_layers: Sequence[int] = (100, 50)
    dropout: float = 0.0
    learning_rate: float = 1e-2
    epochs: int = 500
    error_threshold: float = 0.005
    seed: Optional[int] = 42

    # Grounding settings
    concepts: Dict[str, List[float]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CONCEPTS.items()}
    )
    embeddings: Dict[str, List[float]] = field(default_factory=dict)
    embeddings_path: Optional[str] = None

    # Definition lookup settings
    definition_url: str = DEFAULT_DEFINITION_URL
    lookup_timeout: Optional[float] = 10.0

    @classmethod
    def from_omegaconf(cls, config: DictConfig) -> 'DecoderConfig':
        """Build a config from a Hydra/OmegaConf node; missing keys keep defaults"""
        values = OmegaConf.to_container(config, resolve=True)
        if 'bands' in values:
            values['bands'] = bands_from_mapping(values['bands'])
        if 'hidden_layers' in values:
            values['hidden_layers'] = tuple(values['hidden_layers'])

        known = set(cls.__dataclass_fields__)
        unknown = set(values) - known
        if unknown:
            logger.warning(f"Ignoring unknown decoder config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in values.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Plain-container form, bands as ``{name: [low, high]}``"""
        values = asdict(self)
        values['bands'] = {b.name: [float(b.low_hz), float(b.high_hz)] for b in self.bands}
        values['hidden_layers'] = [int(size) for size in self.hidden_layers]
        # Plain lists so checkpoints load with weights_only=True
        for table in ('concepts', 'embeddings'):
            values[table] = {
                key: np.asarray(vector, dtype=np.float64).tolist()
                for key, vector in getattr(self, table).items()
            }
        return values


@dataclass(frozen=True)
class PredictionResult:
    """Predicted word with its definition and universal concept"""
    predicted_word: str
    definition: str
    universal_concept: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'predictedWord': self.predicted_word,
            'definition': self.definition,
            'universalConcept': self.universal_concept,
        }


class AgnosticBrainDecoder:
    """
    Signal-to-word decoder.

    Pipeline:
    1. DualPathwayFeaturizer: phonetic / semantic band-power features
    2. DualClassifierEnsemble: per-pathway class scores, fused by averaging
    3. LabelCodec: winning class index back to a word
    4. ConceptGrounder + DefinitionLookup: issued concurrently per prediction

    ``train`` replaces the label mapping and both classifiers. It holds the
    decoder lock, and inference waits on the same lock.
    """

    def __init__(
        self,
        config: Optional[DecoderConfig] = None,
        definition_lookup: Optional[DefinitionLookup] = None,
        **kwargs
    ):
        """
        Initialize decoder.

        Args:
            config: Decoder configuration
            definition_lookup: Definition collaborator, defaults to the dictionary API
            **kwargs: Override config parameters
        """
        if config is None:
            config = DecoderConfig()

        for key, value in kwargs.items():
            if key == 'bands' and isinstance(value, Mapping):
                value = bands_from_mapping(value)
            if hasattr(config, key):
                setattr(config, key, value)

        validate_decoder_config(config)
        self.config = config

        self.extractor = BandPowerExtractor(config.bands)
        self.featurizer = DualPathwayFeaturizer(self.extractor)
        self.label_codec = LabelCodec()
        self.ensemble = DualClassifierEnsemble(
            hidden_layers=config.hidden_layers,
            dropout=config.dropout,
            learning_rate=config.learning_rate,
            epochs=config.epochs,
            error_threshold=config.error_threshold,
            seed=config.seed
        )

        embeddings = dict(config.embeddings)
        if config.embeddings_path:
            embeddings.update(load_embeddings(config.embeddings_path))
        self.grounder = ConceptGrounder(embeddings, config.concepts)

        self.definition_lookup = definition_lookup or DefinitionLookup(
            base_url=config.definition_url,
            timeout=config.lookup_timeout
        )

        self._lock = threading.Lock()
        self._error_handler = ErrorHandler(logger)

    @property
    def frequency_bands(self) -> List[FrequencyBand]:
        return list(self.config.bands)

    @property
    def is_trained(self) -> bool:
        return self.ensemble.is_trained

    @property
    def vocabulary(self) -> List[str]:
        return self.label_codec.words

    def extract_phonetic_features(self, raw_sample: RawSample) -> np.ndarray:
        return self.featurizer.featurize_phonetic(raw_sample)

    def extract_semantic_features(self, raw_sample: RawSample) -> np.ndarray:
        return self.featurizer.featurize_semantic(raw_sample)

    def train(
        self,
        raw_samples: Sequence[RawSample],
        labels: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None
    ) -> Dict[str, Any]:
        """
        Train both pathways on labelled raw samples.

        Args:
            raw_samples: Training windows, each a sequence of channels
            labels: One word per window
            progress_callback: Called as ``callback(step, loss)`` during fitting

        Returns:
            Training summary with vocabulary and per-pathway (epochs, loss)
        """
        if len(raw_samples) != len(labels):
            raise InvalidInputError(
                f"Got {len(raw_samples)} samples but {len(labels)} labels"
            )
        if len(raw_samples) == 0:
            raise InvalidInputError("Cannot train on an empty sample set")

        with self._lock:
            features = [self.featurizer.featurize(sample) for sample in raw_samples]

            codec = LabelCodec()
            mapping = codec.build(labels)
            encoded = codec.encode_sequence(labels)
            logger.info(
                f"Training on {len(raw_samples)} samples, vocabulary {list(mapping)}"
            )

            history = self.ensemble.train(
                [(phonetic, semantic, label)
                 for (phonetic, semantic), label in zip(features, encoded)],
                num_classes=codec.vocab_size,
                progress_callback=progress_callback
            )
            self.label_codec = codec

        return {'vocabulary': mapping, 'history': history}

    def _predict_scores_unlocked(self, raw_sample: RawSample) -> ScoreDistribution:
        if not self.ensemble.is_trained:
            raise NotTrainedError("Decoder must be trained before prediction")
        phonetic, semantic = self.featurizer.featurize(raw_sample)
        return self.ensemble.predict_fused(phonetic, semantic)

    def predict_scores(self, raw_sample: RawSample) -> ScoreDistribution:
        """Fused class scores for one raw sample"""
        with self._lock:
            return self._predict_scores_unlocked(raw_sample)

    def predict(self, raw_sample: RawSample) -> str:
        """
        Predict the word for one raw sample.

        Raises:
            NotTrainedError: called before ``train``
            InternalInconsistencyError: winning class has no word
        """
        with self._lock:
            scores = self._predict_scores_unlocked(raw_sample)
            predicted_index = argmax(scores)
            try:
                return self.label_codec.decode(predicted_index)
            except UnknownLabelError as e:
                raise InternalInconsistencyError(
                    f"Class {predicted_index} is outside the trained label mapping "
                    f"of size {self.label_codec.vocab_size}"
                ) from e

    def find_universal_concept(self, word: str) -> str:
        return self.grounder.ground(word)

    def get_normalized_definition(self, word: str) -> str:
        """Definition of ``word``; lookup failures become the placeholder"""
        try:
            return self.definition_lookup.lookup(word)
        except (LookupFailure, requests.exceptions.RequestException) as e:
            logger.warning(f"Definition lookup for '{word}' failed: {e}")
            return DEFINITION_NOT_FOUND

    def process_and_predict(self, raw_sample: RawSample) -> PredictionResult:
        """
        Predict a word, then ground it and look up its definition concurrently.

        Returns:
            PredictionResult with word, definition and concept
        """
        try:
            predicted_word = self.predict(raw_sample)
        except DecoderError as e:
            self._error_handler.handle_error(e, context="process_and_predict", reraise=False)
            raise

        with ThreadPoolExecutor(max_workers=2) as executor:
            definition_future = executor.submit(self.get_normalized_definition, predicted_word)
            concept_future = executor.submit(self.find_universal_concept, predicted_word)

            universal_concept = concept_future.result()
            definition = definition_future.result()

        logger.info(f"Predicted '{predicted_word}' ({universal_concept})")
        return PredictionResult(
            predicted_word=predicted_word,
            definition=definition,
            universal_concept=universal_concept
        )

    def state_dict(self) -> Dict[str, Any]:
        """Trained state for checkpointing"""
        with self._lock:
            return {
                'label_mapping': self.label_codec.to_dict(),
                'ensemble': self.ensemble.state_dict(),
            }

    def load_state_dict(self, state: Mapping[str, Any]) -> None:
        """Restore label mapping and classifiers"""
        with self._lock:
            codec = LabelCodec.from_dict(state['label_mapping'])
            self.ensemble.load_state_dict(state['ensemble'])
            if self.ensemble.num_classes != codec.vocab_size:
                raise InternalInconsistencyError(
                    f"Checkpoint has {self.ensemble.num_classes} classes but "
                    f"{codec.vocab_size} labels"
                )
            self.label_codec = codec

    def __repr__(self) -> str:
        return (
            f'AgnosticBrainDecoder(bands={[b.name for b in self.config.bands]}, '
            f'vocab_size={self.label_codec.vocab_size}, trained={self.is_trained})'
        )
