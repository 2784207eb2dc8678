# feature_pipeline/agents/feature_agent.py
import asyncio
import logging
from typing import List, Optional, Sequence

from feature_pipeline.config import Config, get_config
from feature_pipeline.encoding.artifact import Artifact
from feature_pipeline.encoding.statistics import NumericStatsAccumulator
from feature_pipeline.encoding.vocabulary import VocabularyBuilder
from feature_pipeline.utils.logging_config import log_execution_time

logger = logging.getLogger(__name__)


def drain(source, accumulator):
    """Run one full pass of ``source`` through ``accumulator`` and finalize it"""
    for record in source.open():
        accumulator.observe(record)
    return accumulator.finalize()


@log_execution_time
def run_passes_sequential(source, accumulators: Sequence) -> List:
    return [drain(source, accumulator) for accumulator in accumulators]


async def run_passes(source, accumulators: Sequence, concurrent: bool = False) -> List:
    """
    Drive each accumulator over its own freshly opened stream

    Accumulators never share state, so with ``concurrent`` they run side by
    side in worker threads. Any I/O error from the source aborts the pass.
    """
    if not concurrent:
        return run_passes_sequential(source, accumulators)

    logger.info(f"Running {len(accumulators)} passes concurrently")
    return list(await asyncio.gather(
        *(asyncio.to_thread(drain, source, accumulator) for accumulator in accumulators)
    ))


class FeatureEncodingAgent:
    """Agent responsible for fitting encoder statistics and freezing the artifact"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    async def collect_statistics(self, state: dict) -> dict:
        """Compute numeric statistics and categorical vocabularies"""
        schema = state['schema']
        source = state['row_source']
        encoding = self.config.encoding

        stats_accumulator = NumericStatsAccumulator(schema, mode=encoding.NUMERIC_MODE)
        vocabulary_builder = VocabularyBuilder(schema, missing_token=encoding.MISSING_TOKEN)

        stats, vocabularies = await run_passes(
            source,
            [stats_accumulator, vocabulary_builder],
            concurrent=encoding.PARALLEL_PASSES
        )

        state.update({
            'stats': stats,
            'vocabularies': vocabularies,
            'current_step': 'statistics',
            'next_action': 'layout'
        })
        state['execution_log'].append(
            f"Statistics collected over {stats_accumulator.rows_observed} rows "
            f"({stats.mode} mode, {len(vocabularies)} vocabularies)"
        )
        return state

    async def freeze_artifact(self, state: dict) -> dict:
        """Plan the feature layout and freeze everything into an Artifact"""
        artifact = Artifact.build(
            state['schema'],
            state['stats'],
            state['vocabularies'],
            missing_token=self.config.encoding.MISSING_TOKEN
        )
        layout = artifact.layout
        logger.info(
            f"Layout planned: {layout.numeric_count} numeric slots, "
            f"{len(layout.blocks)} one-hot blocks, totalDim={layout.total_dim}"
        )

        state.update({
            'artifact': artifact,
            'feature_report': {
                'total_dim': layout.total_dim,
                'numeric_features': artifact.schema.numeric_names,
                'categorical_features': artifact.schema.categorical_names,
                'vocabulary_sizes': {name: v.size for name, v in artifact.vocabularies.items()},
                'numeric_stats': artifact.stats.as_dict(),
                'column_names': layout.column_names(artifact.schema, artifact.vocabularies)
            },
            'current_step': 'layout',
            'next_action': 'model_training'
        })
        state['execution_log'].append(f"Artifact frozen: totalDim={layout.total_dim}")
        return state
