"""
Error taxonomy and validation utilities for the agnostic brain decoder.
Provides custom exceptions, configuration validation, and signal validation.
"""

import logging
import traceback
from typing import Any, Optional, Sequence

import numpy as np
from omegaconf import DictConfig


class DecoderError(Exception):
    """Base exception for all decoder errors."""
    pass


class ConfigurationError(DecoderError):
    """Raised when configuration is invalid or incomplete."""
    pass


class InvalidInputError(DecoderError):
    """Raised when signal data is empty or malformed."""
    pass


class UnknownLabelError(DecoderError, KeyError):
    """Raised when a word or class index is outside the current label mapping."""

    def __str__(self):
        return Exception.__str__(self)


class EmptyDistributionError(DecoderError):
    """Raised when a score distribution has no classes to choose from."""
    pass


class DegenerateVectorError(DecoderError):
    """Raised when a similarity is requested against a zero-norm vector."""
    pass


class InternalInconsistencyError(DecoderError):
    """Raised when classifier output and label mapping disagree."""
    pass


class NotTrainedError(DecoderError):
    """Raised when inference is attempted before training."""
    pass


class LookupFailure(DecoderError):
    """Raised when the definition service cannot produce a definition."""
    pass


class CheckpointError(DecoderError):
    """Raised when a decoder checkpoint cannot be read or is incomplete."""
    pass


class ErrorHandler:
    """Centralized error logging for decoder operations."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.error_counts = {}

    def handle_error(
        self,
        error: Exception,
        context: str = "",
        reraise: bool = True
    ) -> None:
        """Log an error with its running count, then optionally re-raise it."""
        error_key = f"{type(error).__name__}:{context}"
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1

        self.logger.error(
            f"Error in {context}: {str(error)}\n"
            f"Error count for this type: {self.error_counts[error_key]}\n"
            f"Traceback: {traceback.format_exc()}"
        )

        if reraise:
            raise error


class ConfigValidator:
    """Validates decoder configuration and provides detailed error messages."""

    @staticmethod
    def validate_bands(bands: Sequence[Any]) -> None:
        """Validate frequency band definitions."""
        if len(bands) == 0:
            raise ConfigurationError("At least one frequency band is required")

        seen = set()
        for band in bands:
            if band.name in seen:
                raise ConfigurationError(f"Duplicate frequency band '{band.name}'")
            seen.add(band.name)

            if band.low_hz >= band.high_hz:
                raise ConfigurationError(
                    f"Band '{band.name}' must satisfy low_hz < high_hz, "
                    f"got [{band.low_hz}, {band.high_hz}]"
                )

    @staticmethod
    def validate_network_config(config: Any) -> None:
        """Validate classifier network settings."""
        hidden_layers = tuple(config.hidden_layers)
        if len(hidden_layers) != 2:
            raise ConfigurationError(
                f"Exactly two hidden layers are required, got {len(hidden_layers)}"
            )
        if any(size <= 0 for size in hidden_layers):
            raise ConfigurationError("Hidden layer sizes must be positive")

        if config.epochs <= 0:
            raise ConfigurationError("epochs must be positive")

        if config.learning_rate <= 0:
            raise ConfigurationError("learning_rate must be positive")

        if not 0.0 <= config.dropout < 1.0:
            raise ConfigurationError("dropout must be in [0, 1)")

        if config.error_threshold < 0:
            raise ConfigurationError("error_threshold must be non-negative")

    @staticmethod
    def validate_grounding_config(config: Any) -> None:
        """Validate concept and embedding tables."""
        if len(config.concepts) == 0:
            raise ConfigurationError("Concept table must not be empty")

        dims = {len(vector) for vector in config.concepts.values()}
        if len(dims) != 1:
            raise ConfigurationError("All concept vectors must share one dimension")

        if config.lookup_timeout is not None and config.lookup_timeout <= 0:
            raise ConfigurationError("lookup_timeout must be positive when set")


def validate_decoder_config(config: Any) -> None:
    """Comprehensive decoder configuration validation."""
    if isinstance(config, DictConfig):
        raise ConfigurationError(
            "Convert DictConfig with DecoderConfig.from_omegaconf before validation"
        )

    ConfigValidator.validate_bands(config.bands)
    ConfigValidator.validate_network_config(config)
    ConfigValidator.validate_grounding_config(config)

    if config.sampling_rate <= 0:
        raise ConfigurationError("sampling_rate must be positive")


class SignalValidator:
    """Validates raw signal arrays before feature extraction."""

    @staticmethod
    def validate_channel(samples: np.ndarray, name: str = "channel") -> None:
        """Validate a single channel is non-empty, one-dimensional and finite."""
        if samples.ndim != 1:
            raise InvalidInputError(
                f"{name} must be one-dimensional, got shape {samples.shape}"
            )

        if samples.size == 0:
            raise InvalidInputError(f"{name} is empty; band power is undefined")

        if not np.isfinite(samples).all():
            raise InvalidInputError(f"{name} contains NaN or Inf values")

    @staticmethod
    def validate_feature_dim(features: np.ndarray, expected_dim: int, name: str = "features") -> None:
        """Validate a feature vector has the trained input dimension."""
        if features.shape != (expected_dim,):
            raise InvalidInputError(
                f"{name} shape mismatch: expected ({expected_dim},), got {features.shape}"
            )
