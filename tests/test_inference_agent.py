# tests/test_inference_agent.py
import logging

import numpy as np
import pandas as pd
import pytest
import pytest_asyncio

from feature_pipeline.agents.data_agent import DataIngestionAgent
from feature_pipeline.agents.inference_agent import InferenceAgent
from feature_pipeline.agents.model_agent import BinaryClassifier
from feature_pipeline.encoding.artifact import ArtifactStore
from feature_pipeline.errors import DimensionMismatchError
from feature_pipeline.pipeline import TrainingPipeline


class TestInferenceAgent:

    @pytest_asyncio.fixture
    async def trained(self, config, train_csv):
        """Train once and return the artifact store"""
        await TrainingPipeline(config).run_pipeline(data_path=str(train_csv))
        return ArtifactStore(config.paths.ARTIFACT_DIR)

    def replace_model(self, store, width):
        """Overwrite the saved model with one expecting ``width`` inputs"""
        rng = np.random.RandomState(0)
        X = rng.normal(size=(16, width))
        y = np.array([0, 1] * 8)
        BinaryClassifier(hidden_layer_sizes=(4,)).fit([(X, y)], epochs=1).save(store.model_path)

    async def run(self, config, test_csv, output_path):
        agent = InferenceAgent(config)
        state = {
            'output_path': str(output_path),
            'artifact_dir': str(config.paths.ARTIFACT_DIR),
            'data_path': str(test_csv),
            'execution_log': []
        }
        state = await agent.load_artifacts(state)
        state = await DataIngestionAgent(config).process(state)
        return await agent.predict(state)

    @pytest.mark.asyncio
    async def test_narrower_model_truncates_each_chunk(self, config, trained, test_csv, tmp_path, caplog):
        """A model narrower than the artifact is warned about at load time and fed truncated chunks"""
        total_dim = trained.load().total_dim
        self.replace_model(trained, total_dim - 2)
        output_path = tmp_path / "out.csv"

        with caplog.at_level(logging.WARNING):
            result = await self.run(config, test_csv, output_path)

        assert "inputs will be adjusted" in caplog.text
        # 5 rows in chunks of 4
        assert caplog.text.count("truncating last 2 column(s)") == 2
        assert result['prediction_report']['rows'] == 5
        assert len(pd.read_csv(output_path)) == 5

    @pytest.mark.asyncio
    async def test_wider_model_zero_pads(self, config, trained, test_csv, tmp_path, caplog):
        total_dim = trained.load().total_dim
        self.replace_model(trained, total_dim + 3)

        with caplog.at_level(logging.WARNING):
            result = await self.run(config, test_csv, tmp_path / "out.csv")

        assert "zero-padding 3 column(s)" in caplog.text
        assert result['prediction_report']['rows'] == 5

    @pytest.mark.asyncio
    async def test_strict_dimensions_reject_mismatch(self, config, trained, test_csv, tmp_path):
        self.replace_model(trained, trained.load().total_dim - 2)
        config.inference.STRICT_DIMENSIONS = True

        with pytest.raises(DimensionMismatchError):
            await self.run(config, test_csv, tmp_path / "out.csv")

    @pytest.mark.asyncio
    async def test_matching_model_has_no_warning(self, config, trained, test_csv, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            await self.run(config, test_csv, tmp_path / "out.csv")

        assert "inputs will be adjusted" not in caplog.text
        assert "column(s)" not in caplog.text
