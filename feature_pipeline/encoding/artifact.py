# feature_pipeline/encoding/artifact.py
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from feature_pipeline.encoding.layout import Block, LayoutPlan, plan_layout
from feature_pipeline.encoding.schema import FeatureSchema
from feature_pipeline.encoding.statistics import NumericStats
from feature_pipeline.encoding.vocabulary import MISSING_TOKEN, Vocabulary
from feature_pipeline.errors import ArtifactCorruptError, ArtifactNotFoundError

logger = logging.getLogger(__name__)

ARTIFACT_VERSION = 1
ARTIFACT_FILENAME = "preprocessing.json"
MODEL_FILENAME = "model.joblib"

FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]


@dataclass(frozen=True)
class Artifact:
    """Everything inference needs to reproduce training-time encoding"""

    schema: FeatureSchema
    stats: NumericStats
    vocabularies: Dict[str, Vocabulary]
    layout: LayoutPlan
    missing_token: str = MISSING_TOKEN
    version: int = ARTIFACT_VERSION

    @property
    def total_dim(self) -> int:
        return self.layout.total_dim

    @classmethod
    def build(cls, schema: FeatureSchema, stats: NumericStats,
              vocabularies: Dict[str, Vocabulary],
              missing_token: str = MISSING_TOKEN) -> "Artifact":
        ordered = {name: vocabularies[name] for name in schema.categorical_names}
        return cls(
            schema=schema,
            stats=stats,
            vocabularies=ordered,
            layout=plan_layout(schema, ordered),
            missing_token=missing_token,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'missingToken': self.missing_token,
            'featureNames': self.schema.names,
            'numericFeatureNames': self.schema.numeric_names,
            'categoricalFeatureNames': self.schema.categorical_names,
            'numericMeans': list(self.stats.means),
            'numericCounts': list(self.stats.counts),
            'numericStds': list(self.stats.stds) if self.stats.stds is not None else None,
            'vocabularies': {name: list(v.tokens) for name, v in self.vocabularies.items()},
            'layout': {
                name: {'offset': block.offset, 'size': block.size}
                for name, block in self.layout.blocks.items()
            },
            'totalDim': self.layout.total_dim,
        }

    @classmethod
    def from_record(cls, data: Any) -> "Artifact":
        """Validate a persisted record and rebuild the artifact from it"""
        try:
            record = ArtifactRecord.model_validate(data)
        except ValidationError as e:
            raise ArtifactCorruptError(f"Invalid artifact record: {e}") from e

        schema = FeatureSchema.from_names(record.feature_names, record.numeric_feature_names)
        stats = NumericStats(
            names=tuple(record.numeric_feature_names),
            means=tuple(record.numeric_means),
            counts=tuple(record.numeric_counts),
            stds=tuple(record.numeric_stds) if record.numeric_stds is not None else None,
        )
        vocabularies = {
            name: Vocabulary(name, tuple(record.vocabularies[name]), record.missing_token)
            for name in record.categorical_feature_names
        }
        layout = LayoutPlan(
            numeric_count=len(record.numeric_feature_names),
            blocks={
                name: Block(record.layout[name].offset, record.layout[name].size)
                for name in record.categorical_feature_names
            },
            total_dim=record.total_dim,
        )
        return cls(schema, stats, vocabularies, layout, record.missing_token, record.version)


class BlockRecord(BaseModel):
    offset: int = Field(ge=0)
    size: int = Field(ge=1)


class ArtifactRecord(BaseModel):
    """Structural contract of the persisted preprocessing artifact"""

    model_config = ConfigDict(populate_by_name=True, extra='forbid')

    version: int
    missing_token: str = Field(alias='missingToken')
    feature_names: List[str] = Field(alias='featureNames')
    numeric_feature_names: List[str] = Field(alias='numericFeatureNames')
    categorical_feature_names: List[str] = Field(alias='categoricalFeatureNames')
    numeric_means: List[FiniteFloat] = Field(alias='numericMeans')
    numeric_counts: List[int] = Field(alias='numericCounts')
    numeric_stds: Optional[List[FiniteFloat]] = Field(default=None, alias='numericStds')
    vocabularies: Dict[str, List[str]]
    layout: Dict[str, BlockRecord]
    total_dim: int = Field(alias='totalDim', ge=0)

    @model_validator(mode='after')
    def check_consistency(self):
        if self.version != ARTIFACT_VERSION:
            raise ValueError(f"unsupported artifact version {self.version}")

        if len(set(self.feature_names)) != len(self.feature_names):
            raise ValueError("featureNames contains duplicates")
        numeric = set(self.numeric_feature_names)
        expected_numeric = [n for n in self.feature_names if n in numeric]
        expected_categorical = [n for n in self.feature_names if n not in numeric]
        if expected_numeric != self.numeric_feature_names:
            raise ValueError("numericFeatureNames is not an ordered subset of featureNames")
        if expected_categorical != self.categorical_feature_names:
            raise ValueError("categoricalFeatureNames does not partition featureNames")

        if len(self.numeric_means) != len(self.numeric_feature_names):
            raise ValueError("numericMeans is not aligned with numericFeatureNames")
        if len(self.numeric_counts) != len(self.numeric_feature_names):
            raise ValueError("numericCounts is not aligned with numericFeatureNames")
        if any(count < 0 for count in self.numeric_counts):
            raise ValueError("numericCounts must be non-negative")
        if self.numeric_stds is not None:
            if len(self.numeric_stds) != len(self.numeric_feature_names):
                raise ValueError("numericStds is not aligned with numericFeatureNames")
            if any(not std > 0 for std in self.numeric_stds):
                raise ValueError("numericStds must be strictly positive")

        if set(self.vocabularies) != set(self.categorical_feature_names):
            raise ValueError("vocabularies keys do not match categoricalFeatureNames")
        if set(self.layout) != set(self.categorical_feature_names):
            raise ValueError("layout keys do not match categoricalFeatureNames")

        offset = len(self.numeric_feature_names)
        for name in self.categorical_feature_names:
            tokens = self.vocabularies[name]
            if self.missing_token not in tokens:
                raise ValueError(f"vocabulary '{name}' lacks the missing token")
            if tokens != sorted(set(tokens)):
                raise ValueError(f"vocabulary '{name}' is not sorted and unique")
            block = self.layout[name]
            if block.offset != offset:
                raise ValueError(f"layout block '{name}' starts at {block.offset}, expected {offset}")
            if block.size != len(tokens):
                raise ValueError(f"layout block '{name}' size {block.size} != vocabulary size {len(tokens)}")
            offset += block.size

        if self.total_dim != offset:
            raise ValueError(f"totalDim {self.total_dim} != sum of component widths {offset}")
        return self


class ArtifactStore:
    """Persists the preprocessing artifact (JSON) and locates the trained model next to it"""

    def __init__(self, directory: Union[str, Path], filename: str = ARTIFACT_FILENAME):
        self.directory = Path(directory)
        self.path = self.directory / filename

    @property
    def model_path(self) -> Path:
        return self.directory / MODEL_FILENAME

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, artifact: Artifact) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(artifact.to_record(), f, indent=2)
        os.replace(tmp_path, self.path)
        logger.info(f"Saved preprocessing artifact to {self.path} (totalDim={artifact.total_dim})")
        return self.path

    def load(self) -> Artifact:
        if not self.path.exists():
            raise ArtifactNotFoundError(f"Missing preprocessing artifact at {self.path}")
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError
            raise ArtifactCorruptError(f"Artifact at {self.path} is not valid UTF-8 JSON: {e}") from e

        artifact = Artifact.from_record(data)
        logger.info(f"Loaded preprocessing artifact from {self.path} (totalDim={artifact.total_dim})")
        return artifact
