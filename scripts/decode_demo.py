#!/usr/bin/env python3
"""
Demo run of the agnostic brain decoder.
Trains on simulated recordings, then decodes one fresh window end to end.
"""

import sys
import time
from pathlib import Path

import numpy as np
from omegaconf import DictConfig, OmegaConf

import hydra

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from agnostic_decoder.checkpoint_manager import CheckpointManager
from agnostic_decoder.decoder import AgnosticBrainDecoder, DecoderConfig
from agnostic_decoder.utils.rich_logging import (
    RichLogger, RichProgressTracker, format_duration, scores_by_word
)


def simulate_recordings(n_samples: int, n_channels: int, sample_length: int, words, seed: int):
    """Uniform random windows with random labels; replace with real recordings"""
    rng = np.random.default_rng(seed)
    raw_samples = rng.random((n_samples, n_channels, sample_length))
    labels = [words[i] for i in rng.integers(0, len(words), size=n_samples)]
    return raw_samples, labels


@hydra.main(config_path="../configs", config_name="decode", version_base="1.3")
def main(config: DictConfig):
    """Demo entry point with Rich logging"""
    OmegaConf.set_struct(config, False)

    log_dir = Path(config.get('paths', {}).get('log_dir', 'logs'))
    rich_logger = RichLogger(log_file=log_dir / "decode_demo.log")

    decoder_config = DecoderConfig.from_omegaconf(config.decoder)
    rich_logger.log_config_summary(decoder_config.to_dict())

    decoder = AgnosticBrainDecoder(decoder_config)

    demo = config.demo
    raw_samples, labels = simulate_recordings(
        demo.n_samples, demo.n_channels, demo.sample_length, list(demo.words), demo.seed
    )
    rich_logger.info(
        f"Simulated {demo.n_samples} windows of {demo.n_channels} × {demo.sample_length} samples"
    )

    try:
        start = time.time()
        with RichProgressTracker(2 * decoder_config.epochs, "Fitting pathways",
                                 console=rich_logger.console) as tracker:
            summary = decoder.train(raw_samples, labels, progress_callback=tracker)
        rich_logger.success(f"Training finished in {format_duration(time.time() - start)}")
        rich_logger.log_vocabulary(summary['vocabulary'])

        checkpoint_path = config.get('paths', {}).get('checkpoint')
        if checkpoint_path:
            saved = CheckpointManager(Path(checkpoint_path).parent).save(decoder, Path(checkpoint_path).name)
            rich_logger.info(f"Saved checkpoint to {saved}")

        new_window = simulate_recordings(1, demo.n_channels, demo.sample_length,
                                         list(demo.words), demo.seed + 1)[0][0]
        scores = decoder.predict_scores(new_window)
        result = decoder.process_and_predict(new_window)

        vocabulary = dict(enumerate(decoder.vocabulary))
        rich_logger.log_prediction(result.to_dict(), scores_by_word(scores, vocabulary))

    except Exception as e:
        rich_logger.error(f"Decoding failed: {str(e)}")
        raise
    finally:
        rich_logger.save()


if __name__ == "__main__":
    main()
