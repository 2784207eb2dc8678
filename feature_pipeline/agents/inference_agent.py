# feature_pipeline/agents/inference_agent.py
import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from feature_pipeline.agents.model_agent import BinaryClassifier
from feature_pipeline.config import Config, get_config
from feature_pipeline.encoding.artifact import ArtifactStore
from feature_pipeline.encoding.encoder import RowEncoder, align_width
from feature_pipeline.encoding.labels import decode_label
from feature_pipeline.encoding.vocabulary import format_token
from feature_pipeline.utils.logging_config import log_async_execution_time

logger = logging.getLogger(__name__)


class InferenceAgent:
    """Agent responsible for encoding unseen rows and writing thresholded predictions"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

    async def load_artifacts(self, state: dict) -> dict:
        """Load the preprocessing artifact and the trained model"""
        store = ArtifactStore(state.get('artifact_dir') or self.config.paths.ARTIFACT_DIR)
        artifact = store.load()
        model = BinaryClassifier.load(store.model_path)

        if model.input_width != artifact.total_dim:
            logger.warning(
                f"Artifact totalDim ({artifact.total_dim}) != model input dim "
                f"({model.input_width}); inputs will be adjusted"
            )

        state.update({
            'artifact': artifact,
            'model': model,
            'current_step': 'load_artifacts',
            'next_action': 'predict'
        })
        state['execution_log'].append(f"Loaded artifacts from {store.directory}")
        return state

    @log_async_execution_time
    async def predict(self, state: dict) -> dict:
        """Encode rows chunk by chunk, predict, threshold and append to the output CSV"""
        encoder = RowEncoder(state['artifact'])
        model = state['model']
        width = model.input_width
        threshold = self.config.inference.THRESHOLD
        id_column = self.config.data.ID_COLUMN
        prediction_column = state.get('prediction_column') or self.config.prediction_column

        output_path = Path(state['output_path'])
        output_path.parent.mkdir(parents=True, exist_ok=True)

        n_rows, n_positive = 0, 0
        header = True
        # Truncate any previous output before appending chunks
        output_path.write_text("", encoding='utf-8')

        for chunk in state['row_source'].iter_chunks():
            if not chunk:
                continue
            X = align_width(
                encoder.encode_batch(chunk), width,
                strict=self.config.inference.STRICT_DIMENSIONS
            )
            predictions = model.predict(X) >= threshold

            frame = pd.DataFrame({
                id_column: [self._format_id(record.get(id_column)) for record in chunk],
                prediction_column: [decode_label(int(p)) for p in predictions]
            })
            frame.to_csv(output_path, mode='a', header=header, index=False)
            header = False

            n_rows += len(chunk)
            n_positive += int(np.sum(predictions))

        if n_rows == 0:
            logger.error("No rows found for inference")
            pd.DataFrame(columns=[id_column, prediction_column]).to_csv(output_path, index=False)
        else:
            logger.info(f"Wrote {n_rows} predictions ({n_positive} positive) to {output_path}")

        state.update({
            'output_path': str(output_path),
            'prediction_report': {
                'rows': n_rows,
                'positive': n_positive,
                'threshold': threshold
            },
            'current_step': 'predict',
            'next_action': 'completed'
        })
        state['execution_log'].append(f"Predictions written: {n_rows} rows")
        return state

    @staticmethod
    def _format_id(value) -> str:
        if value is None:
            return ''
        return format_token(value)
