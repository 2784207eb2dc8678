# feature_pipeline/encoding/encoder.py
"""
Row encoder shared by training-batch construction and inference.

The encoder reads nothing but the record and the frozen artifact, so the
same record always yields the same vector, before and after a save/load.
"""
import logging
from typing import Any, Iterable, Mapping

import numpy as np

from feature_pipeline.encoding.artifact import Artifact
from feature_pipeline.encoding.schema import is_finite_number
from feature_pipeline.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


class RowEncoder:
    """Maps one raw record to a fixed-length float64 vector of length ``total_dim``"""

    def __init__(self, artifact: Artifact):
        self.artifact = artifact
        self.total_dim = artifact.layout.total_dim
        stats = artifact.stats

        # (slot, name, mean, std, observed) per numeric feature; std is None in mean-impute mode
        self._numeric = []
        for pos, name in enumerate(artifact.schema.numeric_names):
            std = stats.stds[pos] if stats.stds is not None else None
            self._numeric.append((pos, name, stats.means[pos], std, stats.counts[pos] > 0))

        self._categorical = []
        for name in artifact.schema.categorical_names:
            block = artifact.layout.block(name)
            self._categorical.append((name, block.offset, block.size, artifact.vocabularies[name]))

    @property
    def normalizes(self) -> bool:
        return self.artifact.stats.normalizes

    def encode(self, record: Mapping[str, Any]) -> np.ndarray:
        vector = np.zeros(self.total_dim, dtype=np.float64)

        for pos, name, mean, std, observed in self._numeric:
            if not observed:
                # never observed during fitting: the slot stays 0
                continue
            raw = record.get(name)
            if is_finite_number(raw):
                value = float(raw)
                vector[pos] = (value - mean) / std if std is not None else value
            else:
                vector[pos] = 0.0 if std is not None else mean

        for name, offset, size, vocabulary in self._categorical:
            idx = vocabulary.index_of(record.get(name))
            if 0 <= idx < size:
                vector[offset + idx] = 1.0

        return vector

    def encode_batch(self, records: Iterable[Mapping[str, Any]]) -> np.ndarray:
        rows = [self.encode(record) for record in records]
        if not rows:
            return np.zeros((0, self.total_dim), dtype=np.float64)
        return np.vstack(rows)


def encode_row(record: Mapping[str, Any], artifact: Artifact) -> np.ndarray:
    return RowEncoder(artifact).encode(record)


def align_width(matrix: np.ndarray, width: int, strict: bool = False) -> np.ndarray:
    """
    Reconcile encoded width with the model's expected input width

    Trailing columns are truncated when the matrix is wider and zero-padded
    when it is narrower. Every adjustment is logged; strict mode raises
    DimensionMismatchError instead.
    """
    actual = matrix.shape[1]
    if actual == width:
        return matrix
    if strict:
        raise DimensionMismatchError(expected=width, actual=actual)

    if actual > width:
        logger.warning(
            f"Artifact totalDim ({actual}) != model input dim ({width}); "
            f"truncating last {actual - width} column(s)"
        )
        return matrix[:, :width]

    logger.warning(
        f"Artifact totalDim ({actual}) != model input dim ({width}); "
        f"zero-padding {width - actual} column(s)"
    )
    padding = np.zeros((matrix.shape[0], width - actual), dtype=matrix.dtype)
    return np.hstack([matrix, padding])
