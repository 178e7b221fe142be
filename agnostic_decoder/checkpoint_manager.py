"""
Checkpoint management for trained decoders.
Handles saving, loading and validation of decoder state.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import torch
from omegaconf import OmegaConf

from .decoder import AgnosticBrainDecoder, DecoderConfig
from .definition_lookup import DefinitionLookup
from .utils.error_handling import CheckpointError


logger = logging.getLogger(__name__)

REQUIRED_KEYS = ('config', 'state', 'metadata')


@dataclass
class CheckpointMetadata:
    """Metadata for a decoder checkpoint"""
    timestamp: str
    vocab_size: int
    vocabulary: List[str]
    phonetic_dim: int
    semantic_dim: int
    training_history: Dict[str, List[float]]


class CheckpointManager:
    """
    Saves and restores trained decoders.

    A checkpoint holds the decoder config, the label mapping and both
    classifier state dicts. A JSON sidecar with the metadata is written next
    to it for quick inspection.
    """

    def __init__(self, checkpoint_dir: Union[str, Path] = "checkpoints"):
        self.checkpoint_dir = Path(checkpoint_dir)
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        if not path.is_absolute() and path.parent == Path('.'):
            path = self.checkpoint_dir / path
        return path

    def save(self, decoder: AgnosticBrainDecoder, name: Union[str, Path] = "decoder.pth") -> Path:
        """
        Save a trained decoder.

        Args:
            decoder: Trained decoder
            name: File name inside ``checkpoint_dir`` or an explicit path

        Returns:
            Path to saved checkpoint
        """
        state = decoder.state_dict()
        ensemble_state = state['ensemble']

        metadata = CheckpointMetadata(
            timestamp=datetime.now().isoformat(),
            vocab_size=len(state['label_mapping']),
            vocabulary=list(state['label_mapping']),
            phonetic_dim=ensemble_state['input_dims']['phonetic'],
            semantic_dim=ensemble_state['input_dims']['semantic'],
            training_history={
                pathway: list(values)
                for pathway, values in decoder.ensemble.training_history.items()
            }
        )

        checkpoint = {
            'config': decoder.config.to_dict(),
            'state': state,
            'metadata': asdict(metadata),
        }

        checkpoint_path = self._resolve(name)
        checkpoint_path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(checkpoint, checkpoint_path)

        metadata_path = checkpoint_path.with_suffix('.json')
        with open(metadata_path, 'w') as f:
            json.dump(asdict(metadata), f, indent=2)

        logger.info(f"Checkpoint saved: {checkpoint_path.name}")
        return checkpoint_path

    def load_checkpoint(self, path: Union[str, Path]) -> Dict[str, Any]:
        """Read and validate a raw checkpoint dictionary"""
        checkpoint_path = self._resolve(path)
        if not checkpoint_path.exists():
            raise CheckpointError(f"Checkpoint not found: {checkpoint_path}")

        try:
            checkpoint = torch.load(checkpoint_path, map_location='cpu', weights_only=True)
        except Exception as e:
            raise CheckpointError(f"Failed to load checkpoint {checkpoint_path}: {e}") from e

        missing = [key for key in REQUIRED_KEYS if key not in checkpoint]
        if missing:
            raise CheckpointError(f"Checkpoint {checkpoint_path.name} is missing {missing}")

        logger.info(f"Checkpoint loaded: {checkpoint_path.name}")
        return checkpoint

    def load_metadata(self, path: Union[str, Path]) -> CheckpointMetadata:
        """Metadata from the JSON sidecar, falling back to the checkpoint itself"""
        checkpoint_path = self._resolve(path)
        metadata_path = checkpoint_path.with_suffix('.json')

        if metadata_path.exists():
            with open(metadata_path, 'r') as f:
                return CheckpointMetadata(**json.load(f))

        return CheckpointMetadata(**self.load_checkpoint(checkpoint_path)['metadata'])

    def load(
        self,
        path: Union[str, Path],
        definition_lookup: Optional[DefinitionLookup] = None
    ) -> AgnosticBrainDecoder:
        """
        Rebuild a trained decoder from a checkpoint.

        Args:
            path: Checkpoint file name or path
            definition_lookup: Optional definition collaborator for the new decoder

        Returns:
            Decoder ready for prediction
        """
        checkpoint = self.load_checkpoint(path)

        try:
            config = DecoderConfig.from_omegaconf(OmegaConf.create(checkpoint['config']))
            decoder = AgnosticBrainDecoder(config, definition_lookup=definition_lookup)
            decoder.load_state_dict(checkpoint['state'])
        except (KeyError, RuntimeError) as e:
            raise CheckpointError(f"Checkpoint state is incomplete: {e}") from e

        return decoder
