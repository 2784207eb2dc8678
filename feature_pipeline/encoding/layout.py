# feature_pipeline/encoding/layout.py
"""
Feature vector layout: numeric scalars first, in schema order, followed by
one one-hot block per categorical feature, also in schema order.

    [0:numeric_count)                    numeric features
    [offset_i:offset_i + size_i)         one-hot block of categorical feature i
"""
from dataclasses import dataclass
from typing import Dict, Mapping

from feature_pipeline.encoding.schema import FeatureSchema
from feature_pipeline.encoding.vocabulary import Vocabulary


@dataclass(frozen=True)
class Block:
    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(frozen=True)
class LayoutPlan:
    numeric_count: int
    blocks: Dict[str, Block]
    total_dim: int

    def block(self, name: str) -> Block:
        return self.blocks[name]

    def column_names(self, schema: FeatureSchema,
                     vocabularies: Mapping[str, Vocabulary]) -> list:
        """Human-readable name for every slot, e.g. 'Age' or 'HomePlanet=Earth'"""
        names = list(schema.numeric_names)
        for name in schema.categorical_names:
            names.extend(f"{name}={token}" for token in vocabularies[name].tokens)
        return names


def plan_layout(schema: FeatureSchema, vocabularies: Mapping[str, Vocabulary]) -> LayoutPlan:
    numeric_count = len(schema.numeric_names)
    offset = numeric_count
    blocks = {}
    for name in schema.categorical_names:
        size = vocabularies[name].size
        blocks[name] = Block(offset=offset, size=size)
        offset += size
    return LayoutPlan(numeric_count=numeric_count, blocks=blocks, total_dim=offset)
