"""
Tests for the sentry HTTP endpoints.

The app runs with its real lifespan (status store, watcher and supervisor)
and a probe backed by fake disks, against a temporary acquisition tree.
"""

import time

import pytest
from fastapi.testclient import TestClient

from daq_sentry.main import create_app
from daq_sentry.models import WrittenBytesMode
from daq_sentry.probe import StatusProbe

from fakes import FakeIO, FakeProcesses


RUN_7 = {"experiment": "e1", "run_number": 7}


@pytest.fixture
def client(settings, probe):
    with TestClient(create_app(settings, probe=probe)) as test_client:
        yield test_client


class TestStatusEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_live_status(self, client, data_dir):
        response = client.get("/status")

        assert response.status_code == 200
        body = response.json()
        assert body["file_count"] == 1
        assert body["written_gb"] == pytest.approx(0.1)
        assert body["total_gb"] == pytest.approx(1000.0)
        assert body["available_gb"] == pytest.approx(500.0)
        assert body["directory_path"] == str(data_dir)
        assert body["written_mode"] == "directory"

    def test_live_status_with_overrides(self, client, tmp_path):
        other = tmp_path / "other"
        other.mkdir()
        (other / "x.graw").write_bytes(b"x")
        (other / "y.graw").write_bytes(b"y")

        response = client.get(
            "/status",
            params={"directory_path": str(other), "disk_identifier": "/Volumes/Scratch"},
        )

        assert response.status_code == 200
        assert response.json()["file_count"] == 2
        assert response.json()["total_gb"] == pytest.approx(2000.0)

    def test_missing_directory_is_500(self, client, tmp_path):
        missing = tmp_path / "nope"

        response = client.get("/status", params={"directory_path": str(missing)})

        assert response.status_code == 500
        assert str(missing) in response.json()["detail"]

    @pytest.mark.parametrize("override", ["directory_path", "disk_identifier"])
    def test_empty_override_is_422(self, client, override):
        """An empty directory_path must not fall back to the working directory."""
        response = client.get("/status", params={override: ""})

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == [override]

    def test_current_status_before_first_tick(self, client, data_dir):
        response = client.get("/status/current")

        assert response.status_code == 200
        body = response.json()
        assert body["file_count"] == 0
        assert body["total_gb"] == 0.0
        assert body["disk_identifier"] == "Macintosh HD"
        assert body["directory_path"] == str(data_dir)
        assert body["updated_at"] is None


class TestCatalogEndpoint:

    def test_catalog_moves_files(self, client, data_dir):
        response = client.post("/catalog", json=RUN_7)

        assert response.status_code == 200
        assert response.json()["file_count"] == 0
        assert (data_dir / "e1" / "run_0007" / "a.graw").exists()

    def test_catalog_twice_is_500(self, client, data_dir):
        client.post("/catalog", json=RUN_7)

        response = client.post("/catalog", json=RUN_7)

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert "run 7" in detail
        assert str(data_dir / "e1" / "run_0007") in detail

    @pytest.mark.parametrize("payload", [
        {"experiment": "../escape", "run_number": 1},
        {"experiment": "", "run_number": 1},
        {"experiment": "e1", "run_number": -1},
        {"experiment": "e1"},
        {"experiment": "e1", "run_number": 1, "extra": True},
    ])
    def test_invalid_run_is_422(self, client, payload):
        response = client.post("/catalog", json=payload)

        assert response.status_code == 422


class TestBackupEndpoint:

    def test_backup_copies_configs(self, client, settings):
        response = client.post("/backup", json=RUN_7)

        assert response.status_code == 200
        assert response.json()["file_count"] == 1
        backup_dir = settings.config_backup_path / "e1" / "run_0007"
        assert (backup_dir / "prepare-e1.xcfg").exists()
        assert (backup_dir / "describe-cobo" / "cobo1.xcfg").exists()
        assert (settings.config_path / "prepare-e1.xcfg").exists()

    def test_backup_twice_is_500(self, client):
        client.post("/backup", json=RUN_7)

        response = client.post("/backup", json=RUN_7)

        assert response.status_code == 500
        assert "already exists" in response.json()["detail"]


class TestWatcherEndpoints:

    def test_reconfigure_is_accepted(self, client, tmp_path):
        response = client.post(
            "/reconfigure",
            json={"directory_path": str(tmp_path), "disk_identifier": "/Volumes/Scratch"},
        )

        assert response.status_code == 202
        assert response.json() == {"accepted": True}

    def test_reconfigure_rejects_unknown_fields(self, client, tmp_path):
        response = client.post(
            "/reconfigure",
            json={"directory_path": str(tmp_path), "disk_identifier": "x", "interval": 1},
        )

        assert response.status_code == 422

    def test_watcher_report(self, client):
        response = client.get("/watcher")

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "running"
        assert body["error"] is None
        assert "directory_path" not in body

    def test_process_mode_requires_process_name(self, settings, fake_disks, tmp_path):
        process_settings = settings.model_copy(update={
            "written_mode": WrittenBytesMode.PROCESS,
            "process_name": "dataRouter",
        })
        probe = StatusProbe(
            disks=fake_disks,
            processes=FakeProcesses({"dataRouter": 412}),
            io_reader=FakeIO({412: 2_000_000_000}),
            written_mode=WrittenBytesMode.PROCESS,
        )

        with TestClient(create_app(process_settings, probe=probe)) as client:
            rejected = client.post(
                "/reconfigure",
                json={"directory_path": str(tmp_path), "disk_identifier": "Macintosh HD"},
            )
            live = client.get("/status")

        assert rejected.status_code == 422
        assert live.json()["written_gb"] == pytest.approx(2.0)
        assert live.json()["process_name"] == "dataRouter"


def test_watcher_persists_samples(settings, probe):
    """
    GIVEN: a service sampling every 50 ms
    WHEN: the watcher has completed a tick
    THEN: /status/current reflects the scanned directory
    """
    fast = settings.model_copy(update={"sample_interval_seconds": 0.05})

    with TestClient(create_app(fast, probe=probe)) as client:
        deadline = time.monotonic() + 5.0
        body = client.get("/status/current").json()
        while body["updated_at"] is None and time.monotonic() < deadline:
            time.sleep(0.02)
            body = client.get("/status/current").json()

        report = client.get("/watcher").json()

    assert body["updated_at"] is not None
    assert body["file_count"] == 1
    assert body["total_gb"] == pytest.approx(1000.0)
    assert report["samples_taken"] >= 1
