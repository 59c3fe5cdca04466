import json

from pgcontainer.services.manifest import ManifestService


class DummyLogger:
    def warning(self, *_args, **_kwargs):
        return None


def test_manifest_service_writes_step_results(tmp_path):
    manifest_file = tmp_path / "run-manifest.json"
    service = ManifestService(logger=DummyLogger(), manifest_file=str(manifest_file))

    service.start_run({"connection_url": "postgres://user:***@db/app"})
    service.step_started("build_image")
    service.step_finished("build_image", "success")
    service.add_artifact("image", "app-2024-03-05-0907:latest")
    service.step_started("launch_container")
    service.step_finished("launch_container", "failed", error="port is already allocated")
    service.finalize("failed", error="port is already allocated")

    data = json.loads(manifest_file.read_text(encoding="utf-8"))

    assert data["status"] == "failed"
    assert data["artifacts"]["image"] == "app-2024-03-05-0907:latest"
    assert [step["status"] for step in data["steps"]] == ["success", "failed"]
    assert data["steps"][1]["error"] == "port is already allocated"


def test_manifest_service_keeps_results_in_memory_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    service = ManifestService(logger=DummyLogger())

    service.start_run({})
    service.step_started("capture_dump")
    service.step_finished("capture_dump", "success")
    service.finalize("success")

    assert service.steps[0]["status"] == "success"
    assert list(tmp_path.iterdir()) == []
