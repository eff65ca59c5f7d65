"""Tests for local image export and compression."""

from __future__ import annotations

import gzip
from unittest import mock

import pytest

from ctrpush.containers.export import artifact_path, export_image, remove_artifact
from ctrpush.errors import ExportError
from ctrpush.job import ArtifactStats


class TestExportImage:

    def test_streams_docker_save_into_gzip(self, tmp_path, docker_save):
        artifact = export_image("nginx:latest", workdir=tmp_path)

        assert docker_save.argv == ["docker", "save", "nginx:latest"]
        assert artifact.local_path == tmp_path / "nginx_latest.tar.gz"
        assert artifact.compressed_name == "nginx_latest.tar.gz"
        assert artifact.tar_name == "nginx_latest.tar"
        with gzip.open(artifact.local_path, "rb") as f:
            assert f.read() == docker_save.payload

    def test_stats(self, tmp_path, docker_save):
        artifact = export_image("nginx:latest", workdir=tmp_path)
        stats = artifact.stats
        assert stats.original_size == len(docker_save.payload)
        assert stats.compressed_size == artifact.local_path.stat().st_size
        assert 0 < stats.percent_saved < 100

    def test_docker_failure_raises_and_cleans_up(self, tmp_path, docker_save):
        docker_save.returncode = 1
        docker_save.error = b"Error response from daemon: reference does not exist\n"
        with pytest.raises(ExportError, match="reference does not exist"):
            export_image("missing:tag", workdir=tmp_path)
        assert not artifact_path("missing:tag", tmp_path).exists()

    def test_docker_missing(self, tmp_path):
        err = FileNotFoundError(2, "No such file or directory", "docker")
        with mock.patch("ctrpush.containers.export.subprocess.Popen", side_effect=err):
            with pytest.raises(ExportError, match="docker not found"):
                export_image("nginx:latest", workdir=tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_dry_run_touches_nothing(self, tmp_path):
        with mock.patch("ctrpush.containers.export.subprocess.Popen") as popen:
            artifact = export_image("nginx:latest", workdir=tmp_path, dry_run=True)
        popen.assert_not_called()
        assert artifact.stats is None
        assert not artifact.local_path.exists()


class TestRemoveArtifact:

    def test_removes_file(self, tmp_path, docker_save):
        artifact = export_image("app:1.0", workdir=tmp_path)
        remove_artifact(artifact)
        assert not artifact.local_path.exists()

    def test_missing_file_is_fine(self, tmp_path):
        artifact = export_image("app:1.0", workdir=tmp_path, dry_run=True)
        remove_artifact(artifact)


class TestArtifactStats:

    def test_percent_saved(self):
        assert ArtifactStats(original_size=1000, compressed_size=250).percent_saved == 75.0

    def test_percent_saved_unknown(self):
        assert ArtifactStats(original_size=0, compressed_size=20).percent_saved is None
