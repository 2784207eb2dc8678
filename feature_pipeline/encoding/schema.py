# feature_pipeline/encoding/schema.py
"""
Feature schema inference.

A column is numeric when its sampled value is a number and categorical
otherwise. The resulting order is fixed for the lifetime of a run and is
persisted with the artifact, so inference never re-infers it.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from feature_pipeline.errors import SchemaError

logger = logging.getLogger(__name__)


class FeatureKind(str, Enum):
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


@dataclass(frozen=True)
class Feature:
    name: str
    kind: FeatureKind


@dataclass(frozen=True)
class FeatureSchema:
    """Ordered, immutable list of features"""

    features: Tuple[Feature, ...]

    def __post_init__(self):
        seen = set()
        for feature in self.features:
            if feature.name in seen:
                raise SchemaError(f"Duplicate feature name '{feature.name}'")
            seen.add(feature.name)

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.features]

    @property
    def numeric_names(self) -> List[str]:
        return [f.name for f in self.features if f.kind is FeatureKind.NUMERIC]

    @property
    def categorical_names(self) -> List[str]:
        return [f.name for f in self.features if f.kind is FeatureKind.CATEGORICAL]

    def __len__(self) -> int:
        return len(self.features)

    @classmethod
    def from_names(cls, feature_names: Sequence[str],
                   numeric_names: Iterable[str]) -> "FeatureSchema":
        """Rebuild a schema from persisted name lists"""
        numeric = set(numeric_names)
        return cls(tuple(
            Feature(name, FeatureKind.NUMERIC if name in numeric else FeatureKind.CATEGORICAL)
            for name in feature_names
        ))


def is_number(value: Any) -> bool:
    """True for int/float values, including numpy scalars. Booleans are not numbers."""
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def is_finite_number(value: Any) -> bool:
    return is_number(value) and math.isfinite(value)


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (float, np.floating)) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def infer_schema(sample: Sequence[Mapping[str, Any]],
                 exclude: Iterable[str] = (),
                 strict: bool = False) -> FeatureSchema:
    """
    Infer a feature schema from sampled records

    Args:
        sample: Records peeked from the row source. With a single record the
            runtime type of each value decides its kind; with more records a
            column is numeric only if every non-missing value is a number.
        exclude: Field names that never become features (label, id, ...)
        strict: Raise SchemaError on columns mixing numbers and strings

    Returns:
        Immutable FeatureSchema in first-seen field order
    """
    if not sample:
        raise SchemaError("Cannot infer schema from an empty sample (no rows available)")

    excluded = set(exclude)
    order: List[str] = []
    observed: Dict[str, Dict[str, int]] = {}

    for record in sample:
        for name, value in record.items():
            if name in excluded:
                continue
            if name not in observed:
                order.append(name)
                observed[name] = {'numeric': 0, 'other': 0}
            # NaN still counts as a number here
            if value is None or (isinstance(value, str) and value == ""):
                continue
            observed[name]['numeric' if is_number(value) else 'other'] += 1

    features = []
    for name in order:
        counts = observed[name]
        if counts['numeric'] and counts['other']:
            if strict:
                raise SchemaError(
                    f"Column '{name}' mixes numeric and string values in the sample"
                )
            logger.warning(f"Column '{name}' has mixed types in the sample; treating as categorical")
        kind = FeatureKind.NUMERIC if counts['numeric'] and not counts['other'] else FeatureKind.CATEGORICAL
        features.append(Feature(name, kind))

    schema = FeatureSchema(tuple(features))
    logger.info(
        f"Inferred schema from {len(sample)} record(s): "
        f"{len(schema.numeric_names)} numeric, {len(schema.categorical_names)} categorical"
    )
    return schema
