"""Training loop for SequenceRegressor with mean-squared-error loss."""

import math
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np
import torch
import torch.nn.functional as F
from loguru import logger
from torch.utils.data import DataLoader, TensorDataset
from tqdm import tqdm

from price_forecast.errors import ForecastError, PredictionCancelled, TrainingFailure
from price_forecast.features.windows import WindowDataset
from price_forecast.models.sequence_model import SequenceRegressor
from price_forecast.models.spec import ModelSpec


@dataclass(frozen=True)
class EpochProgress:
    """Loss summary emitted after each completed epoch (1-based)."""

    epoch: int
    epochs: int
    train_loss: float
    val_loss: Optional[float] = None


class TrainingHistory(Sequence):
    """Immutable per-epoch loss trajectory. Can be iterated any number of times."""

    def __init__(self, events=()):
        self._events: Tuple[EpochProgress, ...] = tuple(events)

    def __getitem__(self, index):
        return self._events[index]

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self):
        return f"TrainingHistory(epochs={len(self)}, final_train_loss={self.final_train_loss})"

    @property
    def train_loss(self) -> List[float]:
        return [e.train_loss for e in self._events]

    @property
    def val_loss(self) -> List[float]:
        return [e.val_loss for e in self._events if e.val_loss is not None]

    @property
    def final_train_loss(self) -> Optional[float]:
        return self._events[-1].train_loss if self._events else None

    @property
    def final_val_loss(self) -> Optional[float]:
        return self._events[-1].val_loss if self._events else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epoch": [e.epoch for e in self._events],
            "train_loss": self.train_loss,
            "val_loss": self.val_loss,
        }


@dataclass
class TrainedModel:
    """Fitted model and its loss trajectory. Scoped to a single request."""

    model: SequenceRegressor
    history: TrainingHistory
    spec: ModelSpec
    device: str = "cpu"


EpochObserver = Callable[[EpochProgress], None]


class SequenceTrainer:
    """
    Fixed-length trainer for SequenceRegressor.

    Runs exactly ``spec.epochs`` epochs of Adam on MSE: no early stopping,
    no learning-rate schedule, no checkpoints. A non-finite loss aborts
    the run with TrainingFailure.
    """

    def __init__(self, spec: ModelSpec, device: str = "cpu", show_progress: bool = False):
        """
        Initialize trainer.

        Args:
            spec: Training hyperparameters
            device: 'cuda' or 'cpu'
            show_progress: Render a tqdm bar over epochs
        """
        self.spec = spec
        self.device = device
        self.show_progress = show_progress

    def fit(
        self,
        model: SequenceRegressor,
        dataset: WindowDataset,
        observer: Optional[EpochObserver] = None,
        cancel_event: Optional[threading.Event] = None,
        lifecycle=None,
    ) -> TrainedModel:
        """
        Train the model to completion.

        Args:
            model: Freshly built SequenceRegressor
            dataset: Training windows in chronological order
            observer: Called with every EpochProgress as it is produced
            cancel_event: Checked between epochs; raises PredictionCancelled once set
            lifecycle: Optional RequestLifecycle that takes ownership of tensors

        Returns:
            TrainedModel with the full loss history
        """
        events = []
        for progress in self.epochs(model, dataset, cancel_event=cancel_event, lifecycle=lifecycle):
            events.append(progress)
            if observer is not None:
                observer(progress)

        history = TrainingHistory(events)
        logger.info(
            f"Training complete: epochs={len(history)}, "
            f"final_train_loss={history.final_train_loss:.6f}"
            + (f", final_val_loss={history.final_val_loss:.6f}" if history.final_val_loss is not None else "")
        )
        return TrainedModel(model=model, history=history, spec=self.spec, device=self.device)

    def epochs(
        self,
        model: SequenceRegressor,
        dataset: WindowDataset,
        cancel_event: Optional[threading.Event] = None,
        lifecycle=None,
    ) -> Iterator[EpochProgress]:
        """
        Lazily train, yielding an EpochProgress after every epoch.

        Nothing runs until the generator is advanced.
        """
        spec = self.spec
        if len(dataset) == 0:
            raise TrainingFailure("Cannot train on an empty dataset")
        if dataset.window_size != spec.window_size:
            raise TrainingFailure(
                f"Dataset window_size {dataset.window_size} does not match spec {spec.window_size}"
            )

        model = model.to(self.device)
        train_idx, val_idx = self._split_indices(len(dataset))

        x_all = torch.from_numpy(np.ascontiguousarray(dataset.inputs, dtype=np.float32)).unsqueeze(-1)
        y_all = torch.from_numpy(np.ascontiguousarray(dataset.targets, dtype=np.float32)).unsqueeze(-1)
        x_train, y_train = x_all[train_idx].to(self.device), y_all[train_idx].to(self.device)
        x_val = y_val = None
        if len(val_idx):
            x_val, y_val = x_all[val_idx].to(self.device), y_all[val_idx].to(self.device)

        if lifecycle is not None:
            for tensor in (x_all, y_all, x_train, y_train, x_val, y_val):
                if tensor is not None:
                    lifecycle.track(tensor)

        loader = self._create_dataloader(x_train, y_train)
        optimizer = torch.optim.Adam(model.parameters(), lr=spec.learning_rate)

        logger.info(
            f"Starting training for {spec.epochs} epochs: train={len(train_idx)}, "
            f"val={len(val_idx)}, batch_size={spec.batch_size}, shuffle={spec.shuffle}, "
            f"lr={spec.learning_rate}"
        )

        progress_bar = tqdm(total=spec.epochs, desc="Training", leave=False, disable=not self.show_progress)
        try:
            for epoch in range(1, spec.epochs + 1):
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning(f"Training cancelled before epoch {epoch}/{spec.epochs}")
                    raise PredictionCancelled(f"Training cancelled before epoch {epoch}")

                try:
                    train_loss = self._train_epoch(model, loader, optimizer)
                    val_loss = self._evaluate(model, x_val, y_val) if x_val is not None else None
                except ForecastError:
                    raise
                except Exception as e:
                    raise TrainingFailure(f"Training failed at epoch {epoch}: {e}") from e

                if val_loss is not None and not math.isfinite(val_loss):
                    raise TrainingFailure(f"Non-finite validation loss at epoch {epoch}: {val_loss}")

                if val_loss is not None:
                    logger.debug(f"Epoch {epoch}/{spec.epochs} - Train Loss: {train_loss:.6f}, Val Loss: {val_loss:.6f}")
                else:
                    logger.debug(f"Epoch {epoch}/{spec.epochs} - Train Loss: {train_loss:.6f}")

                progress_bar.update(1)
                yield EpochProgress(epoch=epoch, epochs=spec.epochs, train_loss=train_loss, val_loss=val_loss)
        finally:
            progress_bar.close()

    def _split_indices(self, n: int) -> Tuple[np.ndarray, np.ndarray]:
        """Hold out the trailing validation fraction (taken before any shuffling)."""
        indices = np.arange(n)
        split = self.spec.validation_split
        if not split:
            return indices, indices[:0]

        split_at = int(math.floor(n * (1.0 - split)))
        if split_at == 0:
            logger.warning(
                f"validation_split={split} leaves no training examples out of {n}; "
                "training on all examples without validation"
            )
            return indices, indices[:0]
        return indices[:split_at], indices[split_at:]

    def _create_dataloader(self, x: torch.Tensor, y: torch.Tensor) -> DataLoader:
        """Create a DataLoader over the training tensors."""
        generator = None
        if self.spec.seed is not None:
            generator = torch.Generator().manual_seed(self.spec.seed)
        return DataLoader(
            TensorDataset(x, y),
            batch_size=self.spec.batch_size,
            shuffle=self.spec.shuffle,
            generator=generator,
        )

    def _train_epoch(self, model: SequenceRegressor, loader: DataLoader, optimizer: torch.optim.Optimizer) -> float:
        """Run one epoch; returns the sample-weighted mean batch loss."""
        model.train()
        total_loss = 0.0
        n_samples = 0

        for x_batch, y_batch in loader:
            predictions = model(x_batch)
            loss = F.mse_loss(predictions, y_batch)

            if not torch.isfinite(loss):
                raise TrainingFailure(f"Non-finite training loss: {loss.item()}")

            optimizer.zero_grad()
            loss.backward()
            optimizer.step()

            total_loss += loss.item() * len(x_batch)
            n_samples += len(x_batch)

        return total_loss / max(n_samples, 1)

    def _evaluate(self, model: SequenceRegressor, x: torch.Tensor, y: torch.Tensor) -> float:
        """MSE on held-out examples, no gradient updates."""
        model.eval()
        with torch.no_grad():
            loss = F.mse_loss(model(x), y)
        return float(loss.item())
