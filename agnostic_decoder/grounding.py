"""
Concept grounding for predicted words.
Maps a word to the nearest abstract concept by cosine similarity of word vectors.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

import numpy as np

from .utils.error_handling import DegenerateVectorError, InvalidInputError


logger = logging.getLogger(__name__)

WORD_NOT_IN_VOCABULARY = "word not in vocabulary"

# Placeholder concept vectors
DEFAULT_CONCEPTS: Dict[str, Sequence[float]] = {
    'entity': [0.1, 0.2, 0.3],
    'action': [0.4, 0.5, 0.6],
    'state': [0.7, 0.8, 0.9],
}


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (norm(a) * norm(b)); zero vectors are rejected"""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    if a.shape != b.shape:
        raise InvalidInputError(
            f"Vector shape mismatch: {a.shape} vs {b.shape}"
        )

    norm_product = np.linalg.norm(a) * np.linalg.norm(b)
    if norm_product == 0:
        raise DegenerateVectorError("Cosine similarity is undefined for a zero vector")

    return float(np.dot(a, b) / norm_product)


def load_embeddings(path: Union[str, Path]) -> Dict[str, np.ndarray]:
    """Load a ``{word: [floats]}`` JSON embedding table"""
    path = Path(path)
    with open(path, 'r') as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise InvalidInputError(f"Embedding file {path} must hold a JSON object")

    embeddings = {word: np.asarray(vector, dtype=np.float64) for word, vector in raw.items()}
    logger.info(f"Loaded {len(embeddings)} word embeddings from {path}")
    return embeddings


class ConceptGrounder:
    """Nearest-concept lookup over a word-embedding table"""

    def __init__(
        self,
        embeddings: Optional[Mapping[str, Sequence[float]]] = None,
        concepts: Optional[Mapping[str, Sequence[float]]] = None
    ):
        """
        Args:
            embeddings: Word -> vector table; words missing here ground to the sentinel
            concepts: Ordered concept name -> vector table
        """
        self.embeddings = {
            word: np.asarray(vector, dtype=np.float64)
            for word, vector in (embeddings or {}).items()
        }
        self.concepts = {
            name: np.asarray(vector, dtype=np.float64)
            for name, vector in (concepts if concepts is not None else DEFAULT_CONCEPTS).items()
        }

        if not self.concepts:
            raise InvalidInputError("Concept table must not be empty")

    def __contains__(self, word: str) -> bool:
        return word in self.embeddings

    def similarities(self, word: str) -> Dict[str, float]:
        """Cosine similarity of the word to every concept, in table order"""
        if word not in self.embeddings:
            return {}
        vector = self.embeddings[word]
        return {
            name: cosine_similarity(vector, concept_vector)
            for name, concept_vector in self.concepts.items()
        }

    def ground(self, word: str) -> str:
        """
        Closest concept name for a word.

        Returns the sentinel ``"word not in vocabulary"`` when the word has no
        embedding. Ties keep the concept listed first.
        """
        if word not in self.embeddings:
            return WORD_NOT_IN_VOCABULARY

        closest, best = None, None
        for name, similarity in self.similarities(word).items():
            if best is None or similarity > best:
                closest, best = name, similarity

        logger.debug(f"Grounded '{word}' to '{closest}' (similarity {best:.4f})")
        return closest
