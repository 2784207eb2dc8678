# feature_pipeline/agents/data_agent.py
import itertools
import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import pandas as pd

from feature_pipeline.config import Config, get_config
from feature_pipeline.encoding.schema import infer_schema
from feature_pipeline.errors import SchemaError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

NUMERIC_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')


def sniff_value(value: Any) -> Any:
    """Type-sniff one raw CSV cell: NA -> None, numeric text -> float, anything else stays str"""
    if value is None:
        return None
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if not isinstance(value, str):
        return value
    if value == "":
        return None
    if NUMERIC_PATTERN.match(value.strip()):
        return float(value)
    return value


def na_to_none(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


class CsvRowSource:
    """
    Re-creatable row source over a CSV file.

    Every call to ``open()`` re-reads the file in chunks of ``chunk_size`` rows
    and returns a fresh one-shot iterator, so memory stays bounded by the chunk
    size regardless of file length. Columns listed in ``raw_columns`` (ids)
    keep their text as-is instead of being type-sniffed.
    """

    def __init__(self, path: Union[str, Path], chunk_size: int = 1024,
                 encoding: str = 'utf-8', sep: str = ',',
                 raw_columns: Iterable[str] = ()):
        self.path = Path(path)
        self.chunk_size = chunk_size
        self.encoding = encoding
        self.sep = sep
        self.raw_columns = frozenset(raw_columns)

    def iter_chunks(self) -> Iterator[List[Record]]:
        if not self.path.exists():
            raise FileNotFoundError(f"Data file not found: {self.path}")

        try:
            reader = pd.read_csv(
                self.path, chunksize=self.chunk_size, dtype=str,
                encoding=self.encoding, sep=self.sep
            )
        except pd.errors.EmptyDataError:
            logger.warning(f"CSV file {self.path} is empty")
            return

        with reader:
            for chunk in reader:
                yield [self._convert(row) for row in chunk.to_dict('records')]

    def _convert(self, row: Dict[str, Any]) -> Record:
        return {
            name: na_to_none(value) if name in self.raw_columns else sniff_value(value)
            for name, value in row.items()
        }

    def open(self) -> Iterator[Record]:
        for chunk in self.iter_chunks():
            yield from chunk

    def peek(self, n: int = 1) -> List[Record]:
        rows = self.open()
        try:
            return list(itertools.islice(rows, n))
        finally:
            rows.close()

    def __repr__(self) -> str:
        return f"CsvRowSource({str(self.path)!r}, chunk_size={self.chunk_size})"


class InMemoryRowSource:
    """Row source over records already in memory"""

    def __init__(self, records: Iterable[Record], chunk_size: int = 1024):
        self.records = list(records)
        self.chunk_size = chunk_size

    def iter_chunks(self) -> Iterator[List[Record]]:
        for start in range(0, len(self.records), self.chunk_size):
            yield [dict(r) for r in self.records[start:start + self.chunk_size]]

    def open(self) -> Iterator[Record]:
        return (dict(r) for r in self.records)

    def peek(self, n: int = 1) -> List[Record]:
        return [dict(r) for r in self.records[:n]]

    def __repr__(self) -> str:
        return f"InMemoryRowSource({len(self.records)} records)"


class DataIngestionAgent:
    """Agent responsible for opening the row source and inferring the feature schema"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    def create_source(self, data_path: Union[str, Path]) -> CsvRowSource:
        return CsvRowSource(
            data_path,
            chunk_size=self.config.data.CHUNK_SIZE,
            raw_columns=[self.config.data.ID_COLUMN]
        )

    async def process(self, state: dict) -> dict:
        """Attach a row source for ``state['data_path']`` unless one is already present"""
        if state.get('row_source') is None:
            state['row_source'] = self.create_source(state['data_path'])
        logger.info(f"Using row source {state['row_source']!r}")
        state['current_step'] = 'data_ingestion'
        state['next_action'] = 'schema_inference'
        return state

    async def infer_schema(self, state: dict) -> dict:
        """Peek the row source and infer the feature schema"""
        source = state['row_source']
        label_column = state.get('label_column') or self.config.data.LABEL_COLUMN
        sample_size = self.config.encoding.SCHEMA_SAMPLE_SIZE

        logger.info(f"Inferring schema from first {sample_size} row(s)")
        sample = source.peek(sample_size)
        if not sample:
            raise SchemaError(f"No rows available in {source!r}")

        if label_column not in sample[0]:
            raise SchemaError(f"Label column '{label_column}' not found in data")

        exclude = self.config.excluded_columns(label_column)
        schema = infer_schema(sample, exclude=exclude, strict=self.config.encoding.STRICT_SCHEMA)

        state.update({
            'label_column': label_column,
            'schema': schema,
            'current_step': 'schema_inference',
            'next_action': 'statistics'
        })
        state['execution_log'].append(
            f"Schema inferred: {len(schema.numeric_names)} numeric, "
            f"{len(schema.categorical_names)} categorical features"
        )
        return state
