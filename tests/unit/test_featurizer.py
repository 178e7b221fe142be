"""
Unit tests for the dual-pathway featurizer.
Tests midpoint splitting and per-pathway feature vector layout.
"""

import pytest
import numpy as np

from agnostic_decoder.models.band_power import DEFAULT_BANDS, BandPowerExtractor, bands_from_mapping
from agnostic_decoder.models.featurizer import DualPathwayFeaturizer, split_channel
from agnostic_decoder.utils.error_handling import InvalidInputError


class TestSplitChannel:
    """Test cases for split_channel"""

    @pytest.mark.parametrize("length", [2, 4, 10, 1000])
    def test_even_length_equal_halves(self, length):
        first, second = split_channel(np.arange(length))
        assert len(first) == len(second) == length // 2

    @pytest.mark.parametrize("length", [1, 3, 11, 999])
    def test_odd_length_second_half_longer(self, length):
        first, second = split_channel(np.arange(length))
        assert len(first) == length // 2
        assert len(second) == len(first) + 1

    def test_halves_preserve_order(self):
        first, second = split_channel([1, 2, 3, 4, 5])
        assert first.tolist() == [1, 2]
        assert second.tolist() == [3, 4, 5]

    @pytest.mark.parametrize("samples", [1.0, [[1.0, 2.0], [3.0, 4.0]]])
    def test_non_vector_channel_raises(self, samples):
        with pytest.raises(InvalidInputError):
            split_channel(samples)


class TestDualPathwayFeaturizer:
    """Test cases for DualPathwayFeaturizer"""

    @pytest.fixture
    def featurizer(self):
        return DualPathwayFeaturizer(BandPowerExtractor(bands_from_mapping(DEFAULT_BANDS)))

    @pytest.fixture
    def raw_sample(self):
        """Random window [num_channels, num_samples]"""
        rng = np.random.RandomState(42)
        return rng.normal(size=(4, 100))

    def test_flat_sample_raises(self, featurizer):
        """A single list of amplitudes is not a sequence of channels"""
        with pytest.raises(InvalidInputError):
            featurizer.featurize([1.0, 1.0, 1.0, 1.0])

    @pytest.mark.parametrize("num_channels,num_samples", [(1, 4), (4, 100), (8, 33)])
    def test_feature_length(self, featurizer, num_channels, num_samples):
        """Both pathways produce channels * bands features"""
        raw_sample = np.ones((num_channels, num_samples))
        phonetic, semantic = featurizer.featurize(raw_sample)

        expected = num_channels * 5
        assert phonetic.shape == (expected,)
        assert semantic.shape == (expected,)
        assert featurizer.feature_dim(num_channels) == expected

    def test_pathways_use_their_own_half(self):
        """Phonetic sees only the first half, semantic only the second"""
        featurizer = DualPathwayFeaturizer(BandPowerExtractor(bands_from_mapping({'delta': [0.5, 4]})))
        raw_sample = [[1, 1, 3, 3]]

        assert featurizer.featurize_phonetic(raw_sample)[0] == pytest.approx(1.0 * 2.25)
        assert featurizer.featurize_semantic(raw_sample)[0] == pytest.approx(9.0 * 2.25)

    def test_featurize_matches_single_pathway_calls(self, featurizer, raw_sample):
        phonetic, semantic = featurizer.featurize(raw_sample)
        assert np.allclose(phonetic, featurizer.featurize_phonetic(raw_sample))
        assert np.allclose(semantic, featurizer.featurize_semantic(raw_sample))

    def test_channel_order_preserved(self, featurizer):
        raw_sample = [np.full(10, 1.0), np.full(10, 2.0)]
        phonetic = featurizer.featurize_phonetic(raw_sample).reshape(2, 5)
        assert phonetic[1, 0] == pytest.approx(4 * phonetic[0, 0])

    def test_zero_channels_yield_empty_vectors(self, featurizer):
        phonetic, semantic = featurizer.featurize([])
        assert phonetic.shape == (0,)
        assert semantic.shape == (0,)

    def test_single_sample_channel_raises(self, featurizer):
        """A one-sample channel leaves the phonetic half empty"""
        with pytest.raises(InvalidInputError):
            featurizer.featurize_phonetic([[1.0]])

    def test_ragged_channels(self, featurizer):
        """Channels of different lengths are split independently"""
        raw_sample = [np.ones(4), np.ones(7)]
        phonetic, semantic = featurizer.featurize(raw_sample)
        assert phonetic.shape == semantic.shape == (10,)
