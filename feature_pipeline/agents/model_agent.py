# feature_pipeline/agents/model_agent.py
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Union

import joblib
import numpy as np
from sklearn.metrics import accuracy_score
from sklearn.neural_network import MLPClassifier

from feature_pipeline.config import Config, get_config
from feature_pipeline.encoding.artifact import ArtifactStore
from feature_pipeline.encoding.encoder import RowEncoder
from feature_pipeline.encoding.labels import encode_label
from feature_pipeline.errors import ArtifactNotFoundError, TrainingDataError
from feature_pipeline.utils.logging_config import log_async_execution_time

logger = logging.getLogger(__name__)

CLASSES = np.array([0, 1])

Batch = Tuple[np.ndarray, np.ndarray]


class BinaryClassifier:
    """Multi-layer perceptron trained incrementally on encoded batches"""

    def __init__(self, hidden_layer_sizes=(50, 50), activation: str = 'logistic',
                 learning_rate_init: float = 0.001, random_state: int = 42,
                 model: Optional[MLPClassifier] = None):
        self.model = model or MLPClassifier(
            hidden_layer_sizes=hidden_layer_sizes,
            activation=activation,
            learning_rate_init=learning_rate_init,
            random_state=random_state
        )

    @property
    def is_fitted(self) -> bool:
        return hasattr(self.model, 'coefs_')

    @property
    def input_width(self) -> Optional[int]:
        if not self.is_fitted:
            return None
        return self.model.coefs_[0].shape[0]

    def fit(self, batches: Iterable[Batch], epochs: int = 1) -> "BinaryClassifier":
        """Train on ``batches`` for ``epochs``; batches must be re-iterable"""
        for epoch in range(epochs):
            n_batches = 0
            for X, y in batches:
                self.model.partial_fit(X, y, classes=CLASSES)
                n_batches += 1
            if n_batches == 0:
                raise TrainingDataError("No training batches available: no rows with a recognized label")
            logger.info(f"Epoch {epoch + 1}/{epochs}: loss={self.model.loss_:.4f} over {n_batches} batches")
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Probability of the positive class for each row"""
        probabilities = self.model.predict_proba(X)
        positive = list(self.model.classes_).index(1)
        return probabilities[:, positive]

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self.model, path)
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "BinaryClassifier":
        path = Path(path)
        if not path.exists():
            raise ArtifactNotFoundError(f"Missing trained model at {path}")
        return cls(model=joblib.load(path))


class TrainingBatches:
    """
    Re-iterable ``(X, y)`` batches built with the shared RowEncoder

    Each iteration re-opens the row source. Rows whose label is not a
    recognized true/false form are skipped and counted.
    """

    def __init__(self, source, encoder: RowEncoder, label_column: str, batch_size: int = 32):
        self.source = source
        self.encoder = encoder
        self.label_column = label_column
        self.batch_size = batch_size
        self.rows = 0
        self.skipped = 0

    def __iter__(self) -> Iterator[Batch]:
        self.rows = 0
        self.skipped = 0
        records, labels = [], []
        for record in self.source.open():
            label = encode_label(record.get(self.label_column))
            if label is None:
                self.skipped += 1
                continue
            records.append(record)
            labels.append(label)
            if len(records) == self.batch_size:
                yield self._make_batch(records, labels)
                records, labels = [], []
        if records:
            yield self._make_batch(records, labels)
        if self.skipped:
            logger.warning(f"Skipped {self.skipped} row(s) with unrecognized '{self.label_column}' labels")

    def _make_batch(self, records, labels) -> Batch:
        self.rows += len(records)
        return self.encoder.encode_batch(records), np.asarray(labels, dtype=np.int64)


class ModelTrainingAgent:
    """Agent responsible for training and persisting the binary classifier"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    def create_model(self) -> BinaryClassifier:
        return BinaryClassifier(**self.config.get_model_config())

    @log_async_execution_time
    async def train_model(self, state: dict) -> dict:
        """Train the classifier on encoded batches"""
        artifact = state['artifact']
        encoder = RowEncoder(artifact)
        batches = TrainingBatches(
            state['row_source'], encoder, state['label_column'],
            batch_size=self.config.training.BATCH_SIZE
        )

        epochs = self.config.training.EPOCHS
        logger.info(f"Training on {artifact.total_dim}-dimensional features for {epochs} epoch(s)")
        model = self.create_model().fit(batches, epochs=epochs)

        accuracy = self.evaluate(model, batches)
        training_report = {
            'epochs': epochs,
            'rows': batches.rows,
            'skipped_rows': batches.skipped,
            'input_width': model.input_width,
            'final_loss': float(model.model.loss_),
            'accuracy': accuracy
        }
        logger.info(f"Training accuracy: {accuracy:.4f} on {batches.rows} rows")

        state.update({
            'model': model,
            'training_report': training_report,
            'current_step': 'model_training',
            'next_action': 'persist'
        })
        state['execution_log'].append(
            f"Model trained: {batches.rows} rows, accuracy={accuracy:.4f}"
        )
        return state

    def evaluate(self, model: BinaryClassifier, batches: TrainingBatches) -> float:
        threshold = self.config.inference.THRESHOLD
        correct, total = 0, 0
        for X, y in batches:
            predictions = (model.predict(X) >= threshold).astype(np.int64)
            correct += int(accuracy_score(y, predictions, normalize=False))
            total += len(y)
        return correct / total if total else 0.0

    async def persist(self, state: dict) -> dict:
        """Write the preprocessing artifact and the trained model"""
        store = ArtifactStore(state.get('artifact_dir') or self.config.paths.ARTIFACT_DIR)
        artifact_path = store.save(state['artifact'])
        model_path = state['model'].save(store.model_path)
        logger.info(f"Saved model to {model_path}")

        state.update({
            'artifact_path': str(artifact_path),
            'model_path': str(model_path),
            'current_step': 'persist',
            'next_action': 'completed'
        })
        state['execution_log'].append(f"Artifacts written to {store.directory}")
        return state
