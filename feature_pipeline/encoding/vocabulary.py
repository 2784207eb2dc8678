# feature_pipeline/encoding/vocabulary.py
"""
Categorical vocabularies.

Tokens are collected into per-feature sets, the missing-value sentinel is
always added, and each set is frozen into a code-point sorted sequence. The
index of a token is its position in that sequence, so the token->index map
can be rebuilt from the persisted sequence alone. Sorting numeric-looking
tokens this way does not give numeric order; one-hot encoding only needs a
stable order.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Set, Tuple

import numpy as np

from feature_pipeline.encoding.schema import FeatureSchema, is_missing

logger = logging.getLogger(__name__)

MISSING_TOKEN = "__MISSING__"


def format_token(value: Any) -> str:
    """Stringify a raw value; integral floats lose their '.0' so 5.0 and '5' agree"""
    if isinstance(value, (float, np.floating)) and float(value).is_integer() and abs(value) < 1e16:
        return str(int(value))
    if isinstance(value, np.generic):
        value = value.item()
    return str(value)


def normalize_token(value: Any, missing_token: str = MISSING_TOKEN) -> str:
    if is_missing(value):
        return missing_token
    return format_token(value)


@dataclass(frozen=True)
class Vocabulary:
    feature: str
    tokens: Tuple[str, ...]
    missing_token: str = MISSING_TOKEN
    index: Dict[str, int] = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        if self.missing_token not in self.tokens:
            raise ValueError(f"Vocabulary for '{self.feature}' is missing the sentinel token")
        object.__setattr__(self, 'index', {token: i for i, token in enumerate(self.tokens)})

    @property
    def size(self) -> int:
        return len(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def index_of(self, value: Any) -> int:
        """Index of a raw value; unseen tokens resolve to the sentinel"""
        token = normalize_token(value, self.missing_token)
        idx = self.index.get(token)
        if idx is None:
            return self.index[self.missing_token]
        return idx

    @classmethod
    def from_tokens(cls, feature: str, tokens, missing_token: str = MISSING_TOKEN) -> "Vocabulary":
        collected = set(tokens)
        collected.add(missing_token)
        return cls(feature, tuple(sorted(collected)), missing_token)


class VocabularyBuilder:
    """Collects distinct tokens per categorical feature in one pass"""

    def __init__(self, schema: FeatureSchema, missing_token: str = MISSING_TOKEN):
        self.missing_token = missing_token
        self.names = tuple(schema.categorical_names)
        self._seen: Dict[str, Set[str]] = {name: set() for name in self.names}

    def observe(self, record: Mapping[str, Any]):
        for name in self.names:
            self._seen[name].add(normalize_token(record.get(name), self.missing_token))

    def finalize(self) -> Dict[str, Vocabulary]:
        vocabularies = {
            name: Vocabulary.from_tokens(name, self._seen[name], self.missing_token)
            for name in self.names
        }
        sizes = {name: vocab.size for name, vocab in vocabularies.items()}
        logger.info(f"Vocabulary sizes: {sizes}")
        return vocabularies
