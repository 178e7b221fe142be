"""
Pathway classification network for the agnostic brain decoder.
Feed-forward network with two hidden layers and independent per-class scores.
"""

import logging
from typing import Callable, Optional, Sequence, Tuple

import torch
import torch.nn as nn
import torch.nn.functional as F


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, float], None]


class PathwayClassifier(nn.Module):
    """
    Multi-class classifier over one pathway's band-power features.

    Features:
    - Input standardization with statistics captured at fit time
    - Two ReLU hidden layers with dropout
    - Sigmoid outputs, one independent score per class
    """

    def __init__(
        self,
        input_dim: int,
        num_classes: int,
        hidden_layers: Sequence[int] = (100, 50),
        dropout: float = 0.0
    ):
        """
        Initialize pathway classifier.

        Args:
            input_dim: Feature vector length (channels * bands)
            num_classes: Number of vocabulary words
            hidden_layers: Sizes of the two hidden layers
            dropout: Dropout probability after each hidden layer
        """
        super().__init__()

        if input_dim <= 0:
            raise ValueError(f"input_dim must be positive, got {input_dim}")
        if num_classes <= 0:
            raise ValueError(f"num_classes must be positive, got {num_classes}")
        if len(hidden_layers) != 2:
            raise ValueError(f"Expected two hidden layers, got {len(hidden_layers)}")

        self.input_dim = input_dim
        self.num_classes = num_classes
        self.hidden_layers = tuple(int(size) for size in hidden_layers)

        first_hidden, second_hidden = self.hidden_layers

        # Standardization statistics, replaced by fit()
        self.register_buffer('feature_mean', torch.zeros(input_dim))
        self.register_buffer('feature_std', torch.ones(input_dim))

        self.feature_layers = nn.Sequential(
            nn.Linear(input_dim, first_hidden),
            nn.ReLU(inplace=True),
            nn.Dropout(dropout),
            nn.Linear(first_hidden, second_hidden),
            nn.ReLU(inplace=True),
            nn.Dropout(dropout)
        )

        self.classifier = nn.Linear(second_hidden, num_classes)

        self._initialize_weights()

    def _initialize_weights(self):
        """Initialize model weights"""
        for module in self.modules():
            if isinstance(module, nn.Linear):
                nn.init.xavier_uniform_(module.weight)
                if module.bias is not None:
                    nn.init.zeros_(module.bias)

    def set_feature_statistics(self, features: torch.Tensor):
        """Capture per-feature mean and std from the training matrix"""
        self.feature_mean.copy_(features.mean(dim=0))
        if features.shape[0] > 1:
            std = features.std(dim=0, unbiased=False)
        else:
            std = torch.ones_like(self.feature_std)
        # Constant features keep their scale instead of dividing by zero
        self.feature_std.copy_(torch.where(std > 1e-8, std, torch.ones_like(std)))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Forward pass returning class logits.

        Args:
            x: Feature matrix [batch_size, input_dim]

        Returns:
            Logits [batch_size, num_classes]
        """
        if x.shape[-1] != self.input_dim:
            raise ValueError(
                f"Expected {self.input_dim} features, got {x.shape[-1]}"
            )

        x = (x - self.feature_mean) / self.feature_std
        features = self.feature_layers(x)
        return self.classifier(features)

    def predict_proba(self, x: torch.Tensor) -> torch.Tensor:
        """Per-class sigmoid scores in [0, 1]"""
        was_training = self.training
        self.eval()
        with torch.no_grad():
            scores = torch.sigmoid(self(x))
        self.train(was_training)
        return scores

    def fit(
        self,
        features: torch.Tensor,
        targets: torch.Tensor,
        epochs: int = 500,
        learning_rate: float = 1e-2,
        error_threshold: float = 0.005,
        progress_callback: Optional[ProgressCallback] = None
    ) -> Tuple[int, float]:
        """
        Fit the network to one-hot targets with full-batch Adam.

        Args:
            features: Training matrix [num_samples, input_dim]
            targets: One-hot targets [num_samples, num_classes]
            epochs: Maximum number of iterations
            learning_rate: Adam learning rate
            error_threshold: Stop once the loss falls below this value
            progress_callback: Called as ``callback(epoch, loss)`` after each epoch

        Returns:
            (epochs_run, final_loss)
        """
        if targets.shape != (features.shape[0], self.num_classes):
            raise ValueError(
                f"targets shape mismatch: expected {(features.shape[0], self.num_classes)}, "
                f"got {tuple(targets.shape)}"
            )

        self.set_feature_statistics(features)
        optimizer = torch.optim.Adam(self.parameters(), lr=learning_rate)

        self.train()
        loss_value = float('inf')
        epoch = 0
        for epoch in range(1, epochs + 1):
            optimizer.zero_grad()
            logits = self(features)
            loss = F.binary_cross_entropy_with_logits(logits, targets)
            loss.backward()
            optimizer.step()

            loss_value = loss.item()
            if progress_callback is not None:
                progress_callback(epoch, loss_value)

            if epoch % 100 == 0:
                logger.debug(f"epoch {epoch}: loss={loss_value:.6f}")

            if loss_value < error_threshold:
                logger.debug(f"Converged after {epoch} epochs (loss {loss_value:.6f})")
                break

        self.eval()
        return epoch, loss_value

    def extra_repr(self) -> str:
        """Extra representation string"""
        return (
            f'input_dim={self.input_dim}, '
            f'num_classes={self.num_classes}, '
            f'hidden_layers={self.hidden_layers}'
        )
