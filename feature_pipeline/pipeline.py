# feature_pipeline/pipeline.py
from langgraph.graph import StateGraph, END
from typing import TypedDict, Optional, List, Any
from datetime import datetime
import logging

from feature_pipeline.config import Config, get_config
from feature_pipeline.agents.data_agent import DataIngestionAgent
from feature_pipeline.agents.feature_agent import FeatureEncodingAgent
from feature_pipeline.agents.model_agent import ModelTrainingAgent
from feature_pipeline.agents.inference_agent import InferenceAgent
from feature_pipeline.utils.logging_config import PipelineLogger

logger = logging.getLogger(__name__)

class TrainingState(TypedDict, total=False):
    """State shared across training agents"""
    # Input
    data_path: str
    label_column: Optional[str]
    artifact_dir: Optional[str]
    row_source: Any

    # Encoder fitting
    schema: Any
    stats: Any
    vocabularies: Optional[dict]
    artifact: Any
    feature_report: Optional[dict]

    # Model training
    model: Any
    training_report: Optional[dict]
    artifact_path: Optional[str]
    model_path: Optional[str]

    # Workflow
    current_step: str
    next_action: str
    execution_log: List[str]

class InferenceState(TypedDict, total=False):
    """State shared across inference agents"""
    data_path: str
    output_path: str
    artifact_dir: Optional[str]
    prediction_column: Optional[str]
    row_source: Any

    artifact: Any
    model: Any
    prediction_report: Optional[dict]

    current_step: str
    next_action: str
    execution_log: List[str]

class TrainingPipeline:
    def __init__(self, config: Optional[Config] = None):
        """Initialize the training pipeline"""
        self.config = config or get_config()
        self.graph = self._build_graph()
        self.compiled_graph = self.graph.compile()

        logger.info("Training pipeline initialized")

    def _build_graph(self) -> StateGraph:
        """Build the training workflow"""
        data_agent = DataIngestionAgent(self.config)
        feature_agent = FeatureEncodingAgent(self.config)
        model_agent = ModelTrainingAgent(self.config)

        workflow = StateGraph(TrainingState)

        workflow.add_node("data_ingestion", data_agent.process)
        workflow.add_node("schema_inference", data_agent.infer_schema)
        workflow.add_node("statistics", feature_agent.collect_statistics)
        workflow.add_node("layout", feature_agent.freeze_artifact)
        workflow.add_node("model_training", model_agent.train_model)
        workflow.add_node("persist", model_agent.persist)

        workflow.set_entry_point("data_ingestion")
        workflow.add_edge("data_ingestion", "schema_inference")
        workflow.add_edge("schema_inference", "statistics")
        workflow.add_edge("statistics", "layout")
        workflow.add_edge("layout", "model_training")
        workflow.add_edge("model_training", "persist")
        workflow.add_edge("persist", END)

        return workflow

    async def run_pipeline(self,
                           data_path: Optional[str] = None,
                           label_column: Optional[str] = None,
                           artifact_dir: Optional[str] = None,
                           row_source: Any = None) -> dict:
        """Fit the encoder, train the model and persist both"""
        if data_path is None and row_source is None:
            raise ValueError("Either data_path or row_source is required")

        initial_state = TrainingState(
            data_path=str(data_path) if data_path is not None else "",
            label_column=label_column or self.config.data.LABEL_COLUMN,
            artifact_dir=str(artifact_dir) if artifact_dir is not None else None,
            row_source=row_source,
            current_step="initialization",
            next_action="data_ingestion",
            execution_log=[f"Training started at {datetime.now()}"]
        )

        with PipelineLogger("training pipeline", logger) as step:
            step.log_progress(f"Reading {row_source!r}" if row_source is not None else f"Reading {data_path}")
            final_state = await self.compiled_graph.ainvoke(initial_state)
            final_state["execution_log"].append(f"Training completed at {datetime.now()}")
            step.log_metric("total_dim", final_state["artifact"].total_dim)
            step.log_metric("accuracy", final_state["training_report"]["accuracy"])

        return final_state

class InferencePipeline:
    def __init__(self, config: Optional[Config] = None):
        """Initialize the inference pipeline"""
        self.config = config or get_config()
        self.graph = self._build_graph()
        self.compiled_graph = self.graph.compile()

        logger.info("Inference pipeline initialized")

    def _build_graph(self) -> StateGraph:
        """Build the inference workflow"""
        data_agent = DataIngestionAgent(self.config)
        inference_agent = InferenceAgent(self.config)

        workflow = StateGraph(InferenceState)

        workflow.add_node("data_ingestion", data_agent.process)
        workflow.add_node("load_artifacts", inference_agent.load_artifacts)
        workflow.add_node("predict", inference_agent.predict)

        # Artifacts load first so a missing artifact fails before any rows are read
        workflow.set_entry_point("load_artifacts")
        workflow.add_edge("load_artifacts", "data_ingestion")
        workflow.add_edge("data_ingestion", "predict")
        workflow.add_edge("predict", END)

        return workflow

    async def run_pipeline(self,
                           data_path: Optional[str] = None,
                           output_path: Optional[str] = None,
                           artifact_dir: Optional[str] = None,
                           row_source: Any = None) -> dict:
        """Encode unseen rows with the persisted artifact and write predictions"""
        if data_path is None and row_source is None:
            raise ValueError("Either data_path or row_source is required")

        if output_path is None:
            output_path = self.config.paths.OUTPUT_DIR / "submission.csv"

        initial_state = InferenceState(
            data_path=str(data_path) if data_path is not None else "",
            output_path=str(output_path),
            artifact_dir=str(artifact_dir) if artifact_dir is not None else None,
            row_source=row_source,
            current_step="initialization",
            next_action="load_artifacts",
            execution_log=[f"Inference started at {datetime.now()}"]
        )

        with PipelineLogger("inference pipeline", logger) as step:
            step.log_progress(f"Writing predictions to {output_path}")
            final_state = await self.compiled_graph.ainvoke(initial_state)
            final_state["execution_log"].append(f"Inference completed at {datetime.now()}")
            step.log_metric("rows", final_state["prediction_report"]["rows"])

        return final_state
