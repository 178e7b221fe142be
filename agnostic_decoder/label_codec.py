"""
Word vocabulary mapping for the agnostic brain decoder.
Keeps classifier output indices consistent with human-readable words.
"""

import numbers
from typing import Dict, Iterable, List, Optional

import torch

from .utils.error_handling import UnknownLabelError


class LabelCodec:
    """Bidirectional mapping between vocabulary words and dense class indices"""

    def __init__(self, words: Optional[Iterable[str]] = None):
        self.word_to_index: Dict[str, int] = {}
        self.index_to_word: List[str] = []

        if words is not None:
            self.build(words)

    @property
    def vocab_size(self) -> int:
        return len(self.index_to_word)

    @property
    def words(self) -> List[str]:
        return list(self.index_to_word)

    def build(self, words: Iterable[str]) -> Dict[str, int]:
        """Rebuild the mapping from training labels

        Indices follow order of first occurrence. Any previous mapping is
        discarded, not merged.

        Args:
            words: Training labels, duplicates allowed

        Returns:
            Copy of the new word-to-index mapping
        """
        word_to_index: Dict[str, int] = {}
        for word in words:
            if word not in word_to_index:
                word_to_index[word] = len(word_to_index)

        self.word_to_index = word_to_index
        self.index_to_word = list(word_to_index)
        return dict(word_to_index)

    def encode(self, word: str) -> int:
        if word not in self.word_to_index:
            raise UnknownLabelError(f"Unknown word '{word}'")
        return self.word_to_index[word]

    def decode(self, index: int) -> str:
        if isinstance(index, torch.Tensor):
            if index.numel() != 1:
                raise UnknownLabelError(f"Unknown class index {index}")
            index = index.item()
        if (not isinstance(index, numbers.Integral) or isinstance(index, bool)
                or not 0 <= index < self.vocab_size):
            raise UnknownLabelError(f"Unknown class index {index!r}")
        return self.index_to_word[int(index)]

    def encode_sequence(self, words: Iterable[str]) -> List[int]:
        """Encode every word, failing on the first unknown one"""
        return [self.encode(word) for word in words]

    def encode_tensor(self, words: Iterable[str]) -> torch.Tensor:
        """Encode words to a long tensor of class indices"""
        return torch.tensor(self.encode_sequence(words), dtype=torch.long)

    def to_dict(self) -> Dict[str, int]:
        return dict(self.word_to_index)

    @classmethod
    def from_dict(cls, mapping: Dict[str, int]) -> 'LabelCodec':
        """Restore a codec from a saved word-to-index mapping"""
        ordered = sorted(mapping.items(), key=lambda item: item[1])
        if [index for _, index in ordered] != list(range(len(ordered))):
            raise UnknownLabelError(
                "Saved label mapping is not a dense range starting at 0"
            )
        return cls(word for word, _ in ordered)

    def __contains__(self, word: str) -> bool:
        return word in self.word_to_index

    def __len__(self) -> int:
        return self.vocab_size

    def __repr__(self) -> str:
        return f'LabelCodec(vocab_size={self.vocab_size})'
