# tests/conftest.py
import pandas as pd
import pytest

from feature_pipeline.config import Config


@pytest.fixture
def config(tmp_path):
    """Small, fast configuration writing into a temporary directory"""
    cfg = Config()
    cfg.paths.ARTIFACT_DIR = tmp_path / "artifacts"
    cfg.paths.OUTPUT_DIR = tmp_path / "output"
    cfg.paths.LOGS_DIR = tmp_path / "logs"
    cfg.data.CHUNK_SIZE = 4
    cfg.training.EPOCHS = 3
    cfg.training.BATCH_SIZE = 8
    cfg.training.HIDDEN_LAYER_SIZES = (8,)
    return cfg


@pytest.fixture
def train_frame():
    """Spaceship-style training rows with missing cells"""
    return pd.DataFrame({
        'PassengerId': ['0001_01', '0002_01', '0003_01', '0004_01', '0005_01',
                        '0006_01', '0007_01', '0008_01', '0009_01', '0010_01'],
        'HomePlanet': ['Europa', 'Earth', 'Europa', None, 'Earth',
                       'Mars', 'Earth', 'Mars', 'Europa', 'Earth'],
        'Age': [39.0, 24.0, 58.0, 33.0, None, 16.0, 44.0, 26.0, 28.0, 35.0],
        'RoomService': [0.0, 109.0, 43.0, 0.0, 303.0, 0.0, 0.0, None, 0.0, 12.0],
        'Destination': ['TRAPPIST-1e', 'TRAPPIST-1e', '55 Cancri e', 'TRAPPIST-1e', None,
                        'PSO J318.5-22', 'TRAPPIST-1e', '55 Cancri e', 'TRAPPIST-1e', 'TRAPPIST-1e'],
        'Transported': ['False', 'True', 'False', 'False', 'True',
                        'True', 'False', 'True', 'True', 'False'],
    })


@pytest.fixture
def train_csv(tmp_path, train_frame):
    path = tmp_path / "train.csv"
    train_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def test_csv(tmp_path, train_frame):
    """Unlabeled rows including a category never seen in training"""
    frame = train_frame.drop(columns=['Transported']).head(5).copy()
    frame['PassengerId'] = ['0101_01', '0102_01', '0103_01', '0104_01', '0105_01']
    frame.loc[0, 'HomePlanet'] = 'Pluto'
    path = tmp_path / "test.csv"
    frame.to_csv(path, index=False)
    return path
