"""
Integration tests for the end-to-end decoding pipeline.
Tests training, prediction, grounding and the definition fallback together.
"""

import threading
import time

import pytest
import numpy as np
import requests
from unittest.mock import MagicMock

from agnostic_decoder.decoder import AgnosticBrainDecoder, DecoderConfig, PredictionResult
from agnostic_decoder.definition_lookup import DEFINITION_NOT_FOUND, DefinitionLookup
from agnostic_decoder.grounding import WORD_NOT_IN_VOCABULARY
from agnostic_decoder.models.ensemble import ScoreDistribution
from agnostic_decoder.utils.error_handling import (
    InternalInconsistencyError,
    InvalidInputError,
    NotTrainedError,
)
from tests.fixtures.synthetic_signals import SyntheticSignalGenerator, constant_window


WORDS = ("focus", "relax", "think")

EMBEDDINGS = {
    'focus': [0.0, 0.1, 0.9],
    'relax': [0.7, 0.8, 0.9],
    'think': [0.4, 0.5, 0.6],
}


class TestDecoderPipeline:
    """Integration tests for AgnosticBrainDecoder"""

    @pytest.fixture
    def generator(self):
        return SyntheticSignalGenerator(words=WORDS, num_channels=4, num_samples=200, random_seed=42)

    @pytest.fixture
    def definition_lookup(self):
        lookup = MagicMock(spec=DefinitionLookup)
        lookup.lookup.side_effect = lambda word: f"definition of {word}"
        return lookup

    @pytest.fixture
    def decoder(self, definition_lookup):
        config = DecoderConfig(epochs=300, embeddings=EMBEDDINGS)
        return AgnosticBrainDecoder(config, definition_lookup=definition_lookup)

    @pytest.fixture
    def trained_decoder(self, decoder, generator):
        raw_samples, labels = generator.generate_dataset(windows_per_word=10)
        decoder.train(raw_samples, labels)
        return decoder

    def test_train_builds_vocabulary(self, decoder, generator):
        raw_samples, labels = generator.generate_dataset(windows_per_word=5)
        summary = decoder.train(raw_samples, labels)

        assert summary['vocabulary'] == {'focus': 0, 'relax': 1, 'think': 2}
        assert set(summary['history']) == {'phonetic', 'semantic'}
        assert decoder.is_trained
        assert decoder.vocabulary == list(WORDS)

    def test_label_mapping_first_occurrence(self, decoder):
        """Labels ["a", "b", "a"] map to {a: 0, b: 1}"""
        raw_samples = [constant_window(v, 2, 8) for v in (1.0, 5.0, 1.0)]
        summary = decoder.train(raw_samples, ["a", "b", "a"])

        assert summary['vocabulary'] == {'a': 0, 'b': 1}
        assert decoder.label_codec.decode(0) == "a"
        assert decoder.label_codec.decode(1) == "b"

    def test_predicts_held_out_windows(self, trained_decoder, generator):
        """Fresh windows of a trained word rank that word first"""
        correct, total = 0, 0
        for word in WORDS:
            for _ in range(5):
                window = generator.generate_window(word)
                correct += trained_decoder.predict(window.channels) == word
                total += 1

        assert correct / total >= 0.8

    def test_fused_scores_cover_vocabulary(self, trained_decoder, generator):
        scores = trained_decoder.predict_scores(generator.generate_window('relax').channels)

        assert isinstance(scores, ScoreDistribution)
        assert list(scores) == [0, 1, 2]
        assert all(0.0 <= value <= 1.0 for value in scores.values())

    def test_process_and_predict(self, trained_decoder, generator, definition_lookup):
        result = trained_decoder.process_and_predict(generator.generate_window('relax').channels)

        assert isinstance(result, PredictionResult)
        assert result.predicted_word in WORDS
        assert result.definition == f"definition of {result.predicted_word}"
        assert result.universal_concept in ('entity', 'action', 'state')
        definition_lookup.lookup.assert_called_once_with(result.predicted_word)

        as_dict = result.to_dict()
        assert set(as_dict) == {'predictedWord', 'definition', 'universalConcept'}

    def test_lookup_network_error_falls_back(self, trained_decoder, generator, definition_lookup):
        """A failing lookup leaves the rest of the result intact"""
        definition_lookup.lookup.side_effect = requests.exceptions.ConnectionError("network down")

        result = trained_decoder.process_and_predict(generator.generate_window('focus').channels)

        assert result.definition == DEFINITION_NOT_FOUND
        assert result.predicted_word in WORDS
        assert result.universal_concept == trained_decoder.find_universal_concept(result.predicted_word)
        assert result.universal_concept != WORD_NOT_IN_VOCABULARY

    def test_real_lookup_with_failing_session(self, generator):
        session = MagicMock(spec=requests.Session)
        session.get.side_effect = requests.exceptions.ConnectionError("network down")
        decoder = AgnosticBrainDecoder(
            DecoderConfig(epochs=100),
            definition_lookup=DefinitionLookup(session=session)
        )
        raw_samples, labels = generator.generate_dataset(windows_per_word=3)
        decoder.train(raw_samples, labels)

        result = decoder.process_and_predict(raw_samples[0])
        assert result.definition == DEFINITION_NOT_FOUND
        assert result.predicted_word in WORDS
        assert result.universal_concept == WORD_NOT_IN_VOCABULARY

    def test_predict_before_train(self, decoder, generator):
        window = generator.generate_window('focus').channels
        with pytest.raises(NotTrainedError):
            decoder.predict(window)

        with pytest.raises(NotTrainedError):
            decoder.process_and_predict(window)

    def test_mismatched_labels(self, decoder, generator):
        raw_samples, labels = generator.generate_dataset(windows_per_word=2)
        with pytest.raises(InvalidInputError):
            decoder.train(raw_samples, labels[:-1])

        with pytest.raises(InvalidInputError):
            decoder.train([], [])

    def test_channel_count_mismatch(self, trained_decoder):
        with pytest.raises(InvalidInputError):
            trained_decoder.predict(np.ones((3, 200)))

    def test_empty_channel_rejected(self, trained_decoder):
        with pytest.raises(InvalidInputError):
            trained_decoder.predict([[], [], [], []])

    def test_winner_outside_mapping(self, trained_decoder, generator, monkeypatch):
        monkeypatch.setattr(
            trained_decoder.ensemble, 'predict_fused',
            lambda phonetic, semantic: ScoreDistribution({7: 1.0})
        )
        with pytest.raises(InternalInconsistencyError):
            trained_decoder.predict(generator.generate_window('focus').channels)

    def test_retrain_replaces_vocabulary(self, trained_decoder):
        raw_samples = [constant_window(v, 4, 200) for v in (1.0, 4.0)]
        trained_decoder.train(raw_samples, ["yes", "no"])

        assert trained_decoder.vocabulary == ["yes", "no"]
        assert trained_decoder.predict(raw_samples[0]) in ("yes", "no")

    def test_predict_waits_for_train(self, trained_decoder, generator):
        """Inference blocks while the decoder lock is held by a writer"""
        window = generator.generate_window('think').channels
        results = []

        trained_decoder._lock.acquire()
        try:
            reader = threading.Thread(target=lambda: results.append(trained_decoder.predict(window)))
            reader.start()
            time.sleep(0.1)
            assert reader.is_alive()
            assert results == []
        finally:
            trained_decoder._lock.release()

        reader.join(timeout=5)
        assert not reader.is_alive()
        assert results[0] in WORDS

    def test_dict_bands_override(self, definition_lookup):
        decoder = AgnosticBrainDecoder(
            bands={'delta': [0.5, 4]}, epochs=50, definition_lookup=definition_lookup
        )
        assert [b.name for b in decoder.frequency_bands] == ['delta']

        phonetic = decoder.extract_phonetic_features([[1, 1, 1, 1]])
        assert phonetic.tolist() == pytest.approx([2.25])
