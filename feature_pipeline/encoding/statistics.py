# feature_pipeline/encoding/statistics.py
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from feature_pipeline.encoding.schema import FeatureSchema, is_finite_number
from feature_pipeline.errors import StatisticsOverflowError

logger = logging.getLogger(__name__)

STANDARDIZE = 'standardize'
MEAN_IMPUTE = 'mean_impute'
NUMERIC_MODES = (STANDARDIZE, MEAN_IMPUTE)

VARIANCE_FLOOR = 1e-12


@dataclass(frozen=True)
class NumericStats:
    """
    Per-feature imputation means and, in standardize mode, standard deviations.

    ``counts`` records how many finite values each feature had; a feature with
    no observations always encodes to 0.
    """

    names: Tuple[str, ...]
    means: Tuple[float, ...]
    counts: Tuple[int, ...]
    stds: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        if len(self.means) != len(self.names):
            raise ValueError("means must align with feature names")
        if self.stds is not None and len(self.stds) != len(self.names):
            raise ValueError("stds must align with feature names")
        if len(self.counts) != len(self.names):
            raise ValueError("counts must align with feature names")

    @property
    def normalizes(self) -> bool:
        return self.stds is not None

    @property
    def mode(self) -> str:
        return STANDARDIZE if self.normalizes else MEAN_IMPUTE

    def mean(self, name: str) -> float:
        return self.means[self.names.index(name)]

    def std(self, name: str) -> Optional[float]:
        if self.stds is None:
            return None
        return self.stds[self.names.index(name)]

    def count(self, name: str) -> int:
        return self.counts[self.names.index(name)]

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {'mean': self.mean(name), 'std': self.std(name), 'count': self.count(name)}
            for name in self.names
        }


class NumericStatsAccumulator:
    """
    Streaming mean / population standard deviation over numeric features.

    Keeps only sum, sum of squares and count per feature. Values that are not
    finite numbers are skipped so missing cells never bias the mean.
    """

    def __init__(self, schema: FeatureSchema, mode: str = STANDARDIZE):
        if mode not in NUMERIC_MODES:
            raise ValueError(f"Unknown numeric mode '{mode}', expected one of {NUMERIC_MODES}")
        self.mode = mode
        self.names = tuple(schema.numeric_names)
        self._sums = [0.0] * len(self.names)
        self._sums_sq = [0.0] * len(self.names)
        self._counts = [0] * len(self.names)
        self.rows_observed = 0

    def observe(self, record: Mapping[str, Any]):
        self.rows_observed += 1
        for i, name in enumerate(self.names):
            value = record.get(name)
            if not is_finite_number(value):
                continue
            value = float(value)
            self._sums[i] += value
            self._sums_sq[i] += value * value
            self._counts[i] += 1

    def finalize(self) -> NumericStats:
        means, stds = [], []
        for name, total, total_sq, count in zip(self.names, self._sums, self._sums_sq, self._counts):
            if count == 0:
                logger.warning(f"Numeric feature '{name}' has no finite values; using mean=0, std=1")
                means.append(0.0)
                stds.append(1.0)
                continue
            mean = total / count
            variance = total_sq / count - mean * mean
            if not math.isfinite(mean) or (self.mode == STANDARDIZE and not math.isfinite(variance)):
                raise StatisticsOverflowError(
                    f"Statistics for numeric feature '{name}' overflow float64 over {count} values"
                )
            # NaN fails the comparison and is clamped as well
            if not variance >= VARIANCE_FLOOR:
                variance = VARIANCE_FLOOR
            means.append(mean)
            stds.append(math.sqrt(variance))

        logger.info(f"Computed statistics for {len(self.names)} numeric features over {self.rows_observed} rows")
        return NumericStats(
            names=self.names,
            means=tuple(means),
            counts=tuple(self._counts),
            stds=tuple(stds) if self.mode == STANDARDIZE else None,
        )
