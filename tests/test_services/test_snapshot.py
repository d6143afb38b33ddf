"""Tests for SnapshotWriter."""

import json
import os

import pytest
from unittest.mock import patch

from fleetperf.config.models import SnapshotConfig
from fleetperf.errors import PersistenceFailure
from fleetperf.services.snapshot import SnapshotWriter


@pytest.fixture
def report(sample_document):
    return {
        "agent-1.delivery.example.net": sample_document,
        "agent-2.delivery.example.net": sample_document,
    }


class TestSnapshotWriter:
    """Writing and reading perf_data.json."""

    def test_default_path_in_log_dated_dir(self, tmp_path, report):
        writer = SnapshotWriter(SnapshotConfig(enabled=True, log_dated_dir=str(tmp_path)))

        path = writer.save(report)

        assert path == tmp_path / "perf_data.json"
        assert path.exists()

    def test_round_trip(self, tmp_path, report):
        writer = SnapshotWriter(SnapshotConfig(enabled=True, log_dated_dir=str(tmp_path)))

        path = writer.save(report)

        assert SnapshotWriter.load(path) == report

    def test_explicit_path_wins(self, tmp_path, report):
        target = tmp_path / "custom.json"
        config = SnapshotConfig(enabled=True, path=str(target), log_dated_dir=str(tmp_path / "nope"))

        path = SnapshotWriter(config).save(report)

        assert path == target
        assert json.loads(target.read_text()) == report

    def test_save_path_argument_overrides_config(self, tmp_path, report):
        writer = SnapshotWriter(SnapshotConfig(enabled=True, log_dated_dir=str(tmp_path)))

        path = writer.save(report, tmp_path / "other.json")

        assert path.name == "other.json"

    def test_overwrites_existing_snapshot(self, tmp_path, report):
        target = tmp_path / "perf_data.json"
        target.write_text("stale")
        writer = SnapshotWriter(SnapshotConfig(enabled=True, path=str(target)))

        writer.save(report)

        assert SnapshotWriter.load(target) == report

    def test_missing_directory_is_persistence_failure(self, tmp_path, report):
        config = SnapshotConfig(enabled=True, log_dated_dir=str(tmp_path / "missing"))

        with pytest.raises(PersistenceFailure):
            SnapshotWriter(config).save(report)

    def test_failed_write_leaves_no_files(self, tmp_path, report):
        target = tmp_path / "perf_data.json"
        writer = SnapshotWriter(SnapshotConfig(enabled=True, path=str(target)))

        with patch('fleetperf.services.snapshot.os.replace', side_effect=OSError("disk full")):
            with pytest.raises(PersistenceFailure):
                writer.save(report)

        assert os.listdir(tmp_path) == []

    def test_unserializable_report_is_persistence_failure(self, tmp_path):
        writer = SnapshotWriter(SnapshotConfig(enabled=True, log_dated_dir=str(tmp_path)))

        with pytest.raises(PersistenceFailure):
            writer.save({"h": {"bad": object()}})

        assert os.listdir(tmp_path) == []

    def test_no_destination_configured(self, report):
        with pytest.raises(PersistenceFailure):
            SnapshotWriter(SnapshotConfig()).save(report)
