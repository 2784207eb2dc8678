# tests/test_artifact.py
import json

import numpy as np
import pytest

from feature_pipeline.encoding.artifact import ARTIFACT_FILENAME, Artifact, ArtifactStore
from feature_pipeline.encoding.encoder import RowEncoder
from feature_pipeline.encoding.schema import infer_schema
from feature_pipeline.encoding.statistics import MEAN_IMPUTE, NumericStatsAccumulator
from feature_pipeline.encoding.vocabulary import MISSING_TOKEN, VocabularyBuilder
from feature_pipeline.errors import ArtifactCorruptError, ArtifactNotFoundError


class TestArtifactStore:

    @pytest.fixture
    def rows(self):
        return [
            {'Age': 39.0, 'HomePlanet': 'Earth', 'CryoSleep': 'False', 'VIP': 'False'},
            {'Age': 24.0, 'HomePlanet': 'Europa', 'CryoSleep': 'True', 'VIP': None},
            {'Age': None, 'HomePlanet': 'Mars', 'CryoSleep': None, 'VIP': 'True'},
            {'Age': 58.0, 'HomePlanet': None, 'CryoSleep': 'False', 'VIP': 'False'},
        ]

    def build(self, rows, mode='standardize'):
        schema = infer_schema(rows[:1])
        stats = NumericStatsAccumulator(schema, mode=mode)
        vocab = VocabularyBuilder(schema)
        for row in rows:
            stats.observe(row)
            vocab.observe(row)
        return Artifact.build(schema, stats.finalize(), vocab.finalize())

    @pytest.fixture
    def artifact(self, rows):
        return self.build(rows)

    @pytest.fixture
    def store(self, tmp_path):
        return ArtifactStore(tmp_path / "artifacts")

    def test_save_load_round_trip(self, artifact, store):
        """A saved artifact reloads to an equivalent one"""
        path = store.save(artifact)
        loaded = store.load()

        assert path.name == ARTIFACT_FILENAME
        assert loaded.schema == artifact.schema
        assert loaded.stats == artifact.stats
        assert loaded.vocabularies == artifact.vocabularies
        assert loaded.layout == artifact.layout
        assert loaded.total_dim == artifact.total_dim

    def test_encoding_survives_round_trip(self, rows, artifact, store):
        """Every row encodes identically before and after persistence"""
        store.save(artifact)
        before = RowEncoder(artifact)
        after = RowEncoder(store.load())

        for row in rows + [{'HomePlanet': 'Pluto', 'Age': 1e6}]:
            np.testing.assert_array_equal(before.encode(row), after.encode(row))

    def test_mean_impute_round_trip(self, rows, store):
        """The mean-only variant persists a null std list"""
        artifact = self.build(rows, mode=MEAN_IMPUTE)
        store.save(artifact)

        data = json.loads(store.path.read_text())
        assert data['numericStds'] is None
        assert store.load().stats.normalizes is False

    def test_record_keys(self, artifact, store):
        """The persisted record carries the full vector contract"""
        store.save(artifact)
        data = json.loads(store.path.read_text())

        assert data['featureNames'] == ['Age', 'HomePlanet', 'CryoSleep', 'VIP']
        assert data['numericFeatureNames'] == ['Age']
        assert data['categoricalFeatureNames'] == ['HomePlanet', 'CryoSleep', 'VIP']
        assert data['numericMeans'] == [pytest.approx(121.0 / 3)]
        assert data['numericCounts'] == [3]
        assert data['vocabularies']['CryoSleep'] == ['False', 'True', MISSING_TOKEN]
        assert data['layout']['HomePlanet'] == {'offset': 1, 'size': 4}
        assert data['totalDim'] == 1 + 4 + 3 + 3

    def test_no_temp_file_left_behind(self, artifact, store):
        store.save(artifact)
        assert [p.name for p in store.directory.iterdir()] == [ARTIFACT_FILENAME]

    def test_missing_artifact(self, store):
        """Loading from an empty directory raises ArtifactNotFoundError"""
        assert not store.exists()
        with pytest.raises(ArtifactNotFoundError):
            store.load()

    def test_invalid_json(self, store):
        store.directory.mkdir(parents=True)
        store.path.write_text("{not json")

        with pytest.raises(ArtifactCorruptError):
            store.load()

    def test_invalid_utf8(self, store):
        """Undecodable bytes are reported as a corrupt artifact"""
        store.directory.mkdir(parents=True)
        store.path.write_bytes(b'\xff\xfe\x00garbage')

        with pytest.raises(ArtifactCorruptError):
            store.load()

    @pytest.mark.parametrize("key, value", [
        ('totalDim', 99),
        ('version', 2),
        ('numericMeans', []),
        ('numericCounts', [-1]),
        ('numericStds', [0.0]),
        ('featureNames', ['Age', 'Age', 'CryoSleep', 'VIP']),
        ('numericMeans', [float('nan')]),
        ('numericMeans', [float('inf')]),
        ('numericStds', [float('inf')]),
    ])
    def test_inconsistent_record(self, artifact, store, key, value):
        """Records that break the vector contract are rejected"""
        record = artifact.to_record()
        record[key] = value
        store.directory.mkdir(parents=True)
        store.path.write_text(json.dumps(record))

        with pytest.raises(ArtifactCorruptError):
            store.load()

    def test_vocabulary_without_sentinel(self, artifact):
        record = artifact.to_record()
        record['vocabularies']['CryoSleep'] = ['False', 'True']

        with pytest.raises(ArtifactCorruptError):
            Artifact.from_record(record)

    def test_unsorted_vocabulary(self, artifact):
        record = artifact.to_record()
        record['vocabularies']['CryoSleep'] = ['True', 'False', MISSING_TOKEN]

        with pytest.raises(ArtifactCorruptError):
            Artifact.from_record(record)

    def test_non_contiguous_layout(self, artifact):
        record = artifact.to_record()
        record['layout']['VIP'] = {'offset': record['layout']['VIP']['offset'] + 1, 'size': 3}

        with pytest.raises(ArtifactCorruptError):
            Artifact.from_record(record)

    def test_unknown_key_rejected(self, artifact):
        record = artifact.to_record()
        record['extra'] = True

        with pytest.raises(ArtifactCorruptError):
            Artifact.from_record(record)
