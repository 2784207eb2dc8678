# feature_pipeline/config.py
import os
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass
import json

logger = logging.getLogger(__name__)

@dataclass
class PathConfig:
    """Configuration for project paths"""
    PROJECT_ROOT: Path
    DATA_DIR: Path
    ARTIFACT_DIR: Path
    OUTPUT_DIR: Path
    LOGS_DIR: Path

@dataclass
class DataConfig:
    """Configuration for the CSV row source"""
    LABEL_COLUMN: str
    ID_COLUMN: str
    PREDICTION_COLUMN: Optional[str]  # defaults to LABEL_COLUMN
    EXCLUDE_COLUMNS: List[str]
    CHUNK_SIZE: int

@dataclass
class EncodingConfig:
    """Configuration for the streaming feature encoder"""
    NUMERIC_MODE: str  # 'standardize' or 'mean_impute'
    SCHEMA_SAMPLE_SIZE: int
    STRICT_SCHEMA: bool
    MISSING_TOKEN: str
    PARALLEL_PASSES: bool

@dataclass
class TrainingConfig:
    """Configuration for the binary classifier"""
    EPOCHS: int
    BATCH_SIZE: int
    HIDDEN_LAYER_SIZES: Tuple[int, ...]
    ACTIVATION: str
    LEARNING_RATE: float
    RANDOM_STATE: int

@dataclass
class InferenceConfig:
    """Configuration for inference"""
    THRESHOLD: float
    STRICT_DIMENSIONS: bool

class Config:
    """Central configuration manager for the feature pipeline"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_file: Optional path to JSON config file to override defaults
        """
        self._load_default_config()

        if config_file and os.path.exists(config_file):
            self._load_config_file(config_file)

        self._load_environment_variables()

    def _load_default_config(self):
        """Load default configuration values"""

        # Project paths
        project_root = Path(__file__).parent.parent
        self.paths = PathConfig(
            PROJECT_ROOT=project_root,
            DATA_DIR=project_root / "data",
            ARTIFACT_DIR=project_root / "model_artifacts",
            OUTPUT_DIR=project_root / "data",
            LOGS_DIR=project_root / "logs"
        )

        self.data = DataConfig(
            LABEL_COLUMN="Transported",
            ID_COLUMN="PassengerId",
            PREDICTION_COLUMN=None,
            EXCLUDE_COLUMNS=[],
            CHUNK_SIZE=1024
        )

        self.encoding = EncodingConfig(
            NUMERIC_MODE="standardize",
            SCHEMA_SAMPLE_SIZE=1,
            STRICT_SCHEMA=False,
            MISSING_TOKEN="__MISSING__",
            PARALLEL_PASSES=False
        )

        self.training = TrainingConfig(
            EPOCHS=10,
            BATCH_SIZE=32,
            HIDDEN_LAYER_SIZES=(50, 50),
            ACTIVATION="logistic",
            LEARNING_RATE=0.001,
            RANDOM_STATE=42
        )

        self.inference = InferenceConfig(
            THRESHOLD=0.5,
            STRICT_DIMENSIONS=False
        )

        # Additional settings
        self.logging_level = "INFO"

    def _load_config_file(self, config_file: str):
        """Load configuration from JSON file"""
        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load config file {config_file}: {e}")
            return

        # Update configurations with values from file
        for section, values in config_data.items():
            if not isinstance(values, dict):
                if hasattr(self, section) and not section.startswith('_'):
                    setattr(self, section, values)
                continue
            if hasattr(self, section):
                config_obj = getattr(self, section)
                for key, value in values.items():
                    if hasattr(config_obj, key):
                        if key == "HIDDEN_LAYER_SIZES":
                            value = tuple(value)
                        elif isinstance(getattr(config_obj, key), Path):
                            value = Path(value)
                        setattr(config_obj, key, value)

    def _load_environment_variables(self):
        """Load configuration from environment variables"""

        if os.getenv("ARTIFACT_DIR"):
            self.paths.ARTIFACT_DIR = Path(os.getenv("ARTIFACT_DIR"))

        # Data settings
        if os.getenv("LABEL_COLUMN"):
            self.data.LABEL_COLUMN = os.getenv("LABEL_COLUMN")

        if os.getenv("ID_COLUMN"):
            self.data.ID_COLUMN = os.getenv("ID_COLUMN")

        if os.getenv("CHUNK_SIZE"):
            self.data.CHUNK_SIZE = int(os.getenv("CHUNK_SIZE"))

        # Encoding settings
        if os.getenv("NUMERIC_MODE"):
            self.encoding.NUMERIC_MODE = os.getenv("NUMERIC_MODE")

        if os.getenv("PARALLEL_PASSES"):
            self.encoding.PARALLEL_PASSES = os.getenv("PARALLEL_PASSES").lower() == 'true'

        # Training settings
        if os.getenv("EPOCHS"):
            self.training.EPOCHS = int(os.getenv("EPOCHS"))

        if os.getenv("BATCH_SIZE"):
            self.training.BATCH_SIZE = int(os.getenv("BATCH_SIZE"))

        if os.getenv("RANDOM_STATE"):
            self.training.RANDOM_STATE = int(os.getenv("RANDOM_STATE"))

        # General settings
        if os.getenv("LOG_LEVEL"):
            self.logging_level = os.getenv("LOG_LEVEL")

    @property
    def prediction_column(self) -> str:
        return self.data.PREDICTION_COLUMN or self.data.LABEL_COLUMN

    def excluded_columns(self, label_column: Optional[str] = None) -> List[str]:
        """Columns that never become features: label, id and configured exclusions"""
        excluded = [label_column or self.data.LABEL_COLUMN, self.data.ID_COLUMN]
        excluded.extend(c for c in self.data.EXCLUDE_COLUMNS if c not in excluded)
        return excluded

    def create_directories(self):
        """Create necessary directories if they don't exist"""
        directories = [
            self.paths.ARTIFACT_DIR,
            self.paths.OUTPUT_DIR,
            self.paths.LOGS_DIR
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def get_model_config(self) -> Dict[str, Any]:
        """Get classifier keyword arguments"""
        return {
            'hidden_layer_sizes': tuple(self.training.HIDDEN_LAYER_SIZES),
            'activation': self.training.ACTIVATION,
            'learning_rate_init': self.training.LEARNING_RATE,
            'random_state': self.training.RANDOM_STATE
        }

    def save_config(self, config_file: str):
        """Save current configuration to JSON file"""
        config_dict = {}

        # Convert dataclasses to dictionaries
        for attr_name in ('paths', 'data', 'encoding', 'training', 'inference'):
            config_dict[attr_name] = {}
            for field_name, field_value in getattr(self, attr_name).__dict__.items():
                if isinstance(field_value, Path):
                    config_dict[attr_name][field_name] = str(field_value)
                elif isinstance(field_value, tuple):
                    config_dict[attr_name][field_name] = list(field_value)
                else:
                    config_dict[attr_name][field_name] = field_value
        config_dict['logging_level'] = self.logging_level

        with open(config_file, 'w') as f:
            json.dump(config_dict, f, indent=2)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if self.data.CHUNK_SIZE <= 0:
            issues.append(f"Invalid chunk size: {self.data.CHUNK_SIZE}")

        if self.encoding.NUMERIC_MODE not in ('standardize', 'mean_impute'):
            issues.append(f"Invalid numeric mode: {self.encoding.NUMERIC_MODE}")

        if self.encoding.SCHEMA_SAMPLE_SIZE < 1:
            issues.append(f"Schema sample size must be >= 1: {self.encoding.SCHEMA_SAMPLE_SIZE}")

        if not self.encoding.MISSING_TOKEN:
            issues.append("Missing token must be a non-empty string")

        if self.training.EPOCHS < 1:
            issues.append(f"Epochs must be >= 1: {self.training.EPOCHS}")

        if self.training.BATCH_SIZE < 1:
            issues.append(f"Batch size must be >= 1: {self.training.BATCH_SIZE}")

        if self.inference.THRESHOLD < 0 or self.inference.THRESHOLD > 1:
            issues.append(f"Invalid threshold: {self.inference.THRESHOLD}")

        return issues

    def __str__(self) -> str:
        """String representation of configuration"""
        return f"Config(artifact_dir={self.paths.ARTIFACT_DIR}, numeric_mode={self.encoding.NUMERIC_MODE})"

# Global configuration instance
_config = None

def get_config(config_file: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton pattern)"""
    global _config
    if _config is None:
        _config = Config(config_file)
    return _config

def reload_config(config_file: Optional[str] = None) -> Config:
    """Reload configuration (useful for testing)"""
    global _config
    _config = Config(config_file)
    return _config

