"""
Dual classifier ensemble for the agnostic brain decoder.
Trains phonetic and semantic classifiers and fuses their per-class scores.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import torch

from .pathway_classifier import PathwayClassifier, ProgressCallback
from ..utils.error_handling import (
    EmptyDistributionError,
    InvalidInputError,
    NotTrainedError,
    SignalValidator,
)


logger = logging.getLogger(__name__)

PATHWAYS = ('phonetic', 'semantic')

TrainingSample = Tuple[np.ndarray, np.ndarray, int]


class ScoreDistribution(Mapping[int, float]):
    """
    Ordered mapping from class index to a non-negative score.

    Key order is the order the scores were produced in, which is what
    ``argmax`` uses to break ties.
    """

    def __init__(self, scores: Optional[Mapping[int, float]] = None):
        self._scores: Dict[int, float] = OrderedDict()
        for index, score in (scores or {}).items():
            self._scores[int(index)] = float(score)

    @classmethod
    def from_tensor(cls, scores: torch.Tensor) -> 'ScoreDistribution':
        """Build a distribution keyed 0..N-1 from a score vector [N]"""
        values = scores.detach().cpu().reshape(-1).tolist()
        return cls(OrderedDict(enumerate(values)))

    def __getitem__(self, index: int) -> float:
        return self._scores[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self._scores)

    def __len__(self) -> int:
        return len(self._scores)

    def __repr__(self) -> str:
        body = ', '.join(f'{k}: {v:.4f}' for k, v in self._scores.items())
        return f'ScoreDistribution({{{body}}})'


def fuse(phonetic: ScoreDistribution, semantic: ScoreDistribution) -> ScoreDistribution:
    """
    Average two score distributions class by class.

    Only classes scored by both pathways are fused; a class present in a
    single distribution is dropped rather than paired with a default score.
    Output follows the key order of ``phonetic``.
    """
    fused = OrderedDict()
    for index in phonetic:
        if index in semantic:
            fused[index] = (phonetic[index] + semantic[index]) / 2

    dropped = (set(phonetic) | set(semantic)) - set(fused)
    if dropped:
        logger.debug(f"Fusion dropped classes scored by one pathway only: {sorted(dropped)}")

    return ScoreDistribution(fused)


def argmax(distribution: ScoreDistribution) -> int:
    """Index with the highest score; ties keep the first-seen index"""
    best_index = None
    best_score = None
    for index, score in distribution.items():
        if best_index is None or score > best_score:
            best_index, best_score = index, score

    if best_index is None:
        raise EmptyDistributionError("Cannot take argmax of an empty score distribution")
    return best_index


def one_hot_targets(labels: Sequence[int], num_classes: int) -> torch.Tensor:
    """Fixed-size one-hot target matrix [num_samples, num_classes]"""
    label_tensor = torch.as_tensor(list(labels), dtype=torch.long)
    if label_tensor.numel() and (label_tensor.min() < 0 or label_tensor.max() >= num_classes):
        raise InvalidInputError(
            f"Labels must lie in [0, {num_classes}), got range "
            f"[{label_tensor.min().item()}, {label_tensor.max().item()}]"
        )
    return torch.nn.functional.one_hot(label_tensor, num_classes=num_classes).float()


class DualClassifierEnsemble:
    """
    Owns the phonetic and semantic classifiers.

    Both classifiers are rebuilt on every ``train`` call over the class
    space given by ``num_classes``.
    """

    def __init__(
        self,
        hidden_layers: Sequence[int] = (100, 50),
        dropout: float = 0.0,
        learning_rate: float = 1e-2,
        epochs: int = 500,
        error_threshold: float = 0.005,
        seed: Optional[int] = 42
    ):
        self.hidden_layers = tuple(hidden_layers)
        self.dropout = dropout
        self.learning_rate = learning_rate
        self.epochs = epochs
        self.error_threshold = error_threshold
        self.seed = seed

        self.classifiers: Dict[str, PathwayClassifier] = {}
        self.num_classes = 0
        self.training_history: Dict[str, Tuple[int, float]] = {}

    @property
    def is_trained(self) -> bool:
        return len(self.classifiers) == len(PATHWAYS)

    def input_dim(self, pathway: str) -> int:
        return self._classifier(pathway).input_dim

    def build(self, input_dims: Mapping[str, int], num_classes: int) -> None:
        """Create fresh untrained classifiers for both pathways"""
        self.classifiers = {
            pathway: PathwayClassifier(
                input_dim=input_dims[pathway],
                num_classes=num_classes,
                hidden_layers=self.hidden_layers,
                dropout=self.dropout
            )
            for pathway in PATHWAYS
        }
        self.num_classes = num_classes

    def train(
        self,
        samples: Sequence[TrainingSample],
        num_classes: int,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Dict[str, Tuple[int, float]]:
        """
        Train both classifiers.

        Args:
            samples: (phonetic_features, semantic_features, class_index) triples
            num_classes: Size of the class-index space
            progress_callback: Called as ``callback(step, loss)`` across both pathways

        Returns:
            Mapping pathway -> (epochs_run, final_loss)
        """
        if len(samples) == 0:
            raise InvalidInputError("Cannot train on an empty sample set")
        if num_classes <= 0:
            raise InvalidInputError(f"num_classes must be positive, got {num_classes}")

        phonetic = self._stack([sample[0] for sample in samples], 'phonetic')
        semantic = self._stack([sample[1] for sample in samples], 'semantic')
        targets = one_hot_targets([sample[2] for sample in samples], num_classes)

        previous = (self.classifiers, self.num_classes)

        history = {}
        try:
            # Seeded runs leave the global RNG stream untouched
            with torch.random.fork_rng(devices=[], enabled=self.seed is not None):
                if self.seed is not None:
                    torch.manual_seed(self.seed)

                self.build(
                    {'phonetic': phonetic.shape[1], 'semantic': semantic.shape[1]},
                    num_classes
                )

                for offset, (pathway, features) in enumerate(
                    (('phonetic', phonetic), ('semantic', semantic))
                ):
                    callback = None
                    if progress_callback is not None:
                        base = offset * self.epochs
                        callback = lambda epoch, loss, base=base: progress_callback(base + epoch, loss)

                    history[pathway] = self.classifiers[pathway].fit(
                        features,
                        targets,
                        epochs=self.epochs,
                        learning_rate=self.learning_rate,
                        error_threshold=self.error_threshold,
                        progress_callback=callback
                    )
                    logger.info(
                        f"Trained {pathway} classifier: {history[pathway][0]} epochs, "
                        f"loss={history[pathway][1]:.6f}"
                    )
        except Exception:
            # Keep the last trained classifiers usable
            self.classifiers, self.num_classes = previous
            raise

        self.training_history = history
        return history

    def predict_scores(self, pathway: str, feature_vector: np.ndarray) -> ScoreDistribution:
        """Per-class scores of one pathway's classifier"""
        classifier = self._classifier(pathway)
        features = np.asarray(feature_vector, dtype=np.float32)
        SignalValidator.validate_feature_dim(features, classifier.input_dim, f"{pathway} features")

        scores = classifier.predict_proba(torch.from_numpy(features).unsqueeze(0))
        return ScoreDistribution.from_tensor(scores[0])

    def predict_phonetic(self, feature_vector: np.ndarray) -> ScoreDistribution:
        return self.predict_scores('phonetic', feature_vector)

    def predict_semantic(self, feature_vector: np.ndarray) -> ScoreDistribution:
        return self.predict_scores('semantic', feature_vector)

    def predict_fused(self, phonetic_features: np.ndarray, semantic_features: np.ndarray) -> ScoreDistribution:
        """Fused distribution for one sample's two feature vectors"""
        return fuse(
            self.predict_phonetic(phonetic_features),
            self.predict_semantic(semantic_features)
        )

    def state_dict(self) -> Dict[str, object]:
        """Serializable classifier state"""
        if not self.is_trained:
            raise NotTrainedError("Ensemble has not been trained")
        return {
            'num_classes': self.num_classes,
            'input_dims': {p: c.input_dim for p, c in self.classifiers.items()},
            'classifiers': {p: c.state_dict() for p, c in self.classifiers.items()},
        }

    def load_state_dict(self, state: Mapping[str, object]) -> None:
        """Restore classifiers saved with ``state_dict``"""
        self.build(state['input_dims'], state['num_classes'])
        for pathway, classifier in self.classifiers.items():
            classifier.load_state_dict(state['classifiers'][pathway])
            classifier.eval()

    def _classifier(self, pathway: str) -> PathwayClassifier:
        if pathway not in PATHWAYS:
            raise ValueError(f"Unknown pathway '{pathway}', expected one of {PATHWAYS}")
        if not self.is_trained:
            raise NotTrainedError("Ensemble has not been trained")
        return self.classifiers[pathway]

    @staticmethod
    def _stack(vectors: List[np.ndarray], pathway: str) -> torch.Tensor:
        lengths = {len(vector) for vector in vectors}
        if len(lengths) != 1:
            raise InvalidInputError(
                f"{pathway} feature vectors have inconsistent lengths: {sorted(lengths)}"
            )
        if lengths == {0}:
            raise InvalidInputError(f"{pathway} feature vectors are empty")
        return torch.from_numpy(np.stack(vectors).astype(np.float32))
