import pytest

from directory_sync.jobs import sync_server
from directory_sync.models import SyncSummary


class DummySettings:
    worker_port = 9000
    cache_ttl_seconds = 0.0
    match_strategy = "first"

    def __init__(self, sync_log_file):
        self.sync_log_file = sync_log_file


@pytest.fixture(autouse=True)
def reset_executor(monkeypatch, tmp_path):
    submitted = {}

    class DummyExecutor:
        def submit(self, fn, args):
            submitted["called"] = True
            submitted["fn"] = fn
            submitted["args"] = args

    monkeypatch.setattr(sync_server, "_executor", DummyExecutor())
    monkeypatch.setattr(sync_server, "get_settings", lambda: DummySettings(str(tmp_path / "sync.log")))
    sync_server._last_run.clear()
    yield submitted
    if sync_server._run_lock.locked():
        sync_server._run_lock.release()
    sync_server._last_run.clear()


def test_health_endpoint(reset_executor):
    client = sync_server.app.test_client()
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["sync_running"] is False


def test_health_reports_missing_config(monkeypatch, reset_executor):
    def raise_config():
        raise sync_server.ConfigError("DIRECTORY_STORE_URL must be set")

    monkeypatch.setattr(sync_server, "get_settings", raise_config)
    response = sync_server.app.test_client().get("/healthz")
    assert response.status_code == 503


def test_enqueue_sync_validates_payload(reset_executor):
    client = sync_server.app.test_client()
    assert client.post("/sync", json={"batch_size": "bad"}).status_code == 400
    assert client.post("/sync", json={"batch_size": -5}).status_code == 400
    assert client.post("/sync", json={"match_strategy": "closest"}).status_code == 400
    assert "called" not in reset_executor


def test_enqueue_sync_passes_params(reset_executor):
    client = sync_server.app.test_client()
    response = client.post("/sync", json={"batch_size": 5, "dry_run": True, "match_strategy": "best"})

    assert response.status_code == 202
    assert reset_executor["called"] is True
    assert reset_executor["args"] == {"batch_size": 5, "dry_run": True, "match_strategy": "best"}


def test_overlapping_sync_is_rejected(reset_executor):
    client = sync_server.app.test_client()
    assert client.post("/sync", json={}).status_code == 202
    assert client.post("/sync", json={}).status_code == 409


def test_run_job_records_last_summary_and_releases_lock(monkeypatch, reset_executor):
    class FakeEngine:
        def run(self, batch_size=None):
            return SyncSummary(created=2, unchanged=1)

    monkeypatch.setattr(
        sync_server.DirectorySyncEngine,
        "from_settings",
        staticmethod(lambda settings, **kwargs: FakeEngine()),
    )
    client = sync_server.app.test_client()
    assert client.get("/sync/last").status_code == 404

    assert client.post("/sync", json={}).status_code == 202
    reset_executor["fn"](reset_executor["args"])

    assert sync_server._run_lock.locked() is False
    body = client.get("/sync/last").get_json()["data"]
    assert body["results"] == {"created": 2, "updated": 0, "unchanged": 1, "errors": 0}
    assert body["success"] is True


def test_run_job_failure_is_logged_and_recorded(monkeypatch, reset_executor):
    class FailingEngine:
        def run(self, batch_size=None):
            raise RuntimeError("store unavailable")

    monkeypatch.setattr(
        sync_server.DirectorySyncEngine,
        "from_settings",
        staticmethod(lambda settings, **kwargs: FailingEngine()),
    )
    sync_server._run_lock.acquire()

    sync_server._run_job_safe({"batch_size": None, "dry_run": False, "match_strategy": None})

    assert sync_server._run_lock.locked() is False
    assert sync_server._last_run["success"] is False
    assert sync_server._last_run["error"] == "store unavailable"


def test_last_run_is_published_before_lock_release(monkeypatch, reset_executor):
    class FakeEngine:
        def run(self, batch_size=None):
            return SyncSummary(updated=1)

    lock_states = []
    monkeypatch.setattr(
        sync_server.DirectorySyncEngine,
        "from_settings",
        staticmethod(lambda settings, **kwargs: FakeEngine()),
    )
    monkeypatch.setattr(
        sync_server,
        "append_run_log",
        lambda entry, path: lock_states.append((sync_server._run_lock.locked(), dict(sync_server._last_run))),
    )
    sync_server._run_lock.acquire()

    sync_server._run_job_safe({"batch_size": None, "dry_run": False, "match_strategy": None})

    locked, published = lock_states[0]
    assert locked is True
    assert published["results"]["updated"] == 1
    assert sync_server._run_lock.locked() is False


def test_provider_cache_is_scoped_to_app(monkeypatch):
    monkeypatch.delitem(sync_server.app.config, "SYNC_CACHE", raising=False)

    first = sync_server._get_cache(60.0)
    assert sync_server._get_cache(60.0) is first
    assert sync_server.app.config["SYNC_CACHE"] is first

    rebuilt = sync_server._get_cache(120.0)
    assert rebuilt is not first
    assert rebuilt.ttl_seconds == 120.0
