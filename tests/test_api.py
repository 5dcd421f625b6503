from fastapi.testclient import TestClient
import pytest

from image_optimizer.api import app
from image_optimizer.handler import WorkerContext, get_worker_context
from image_optimizer.transcoder import TranscodeOptions

from conftest import make_image_bytes, sqs_message


@pytest.fixture
def client(store):
    worker = WorkerContext(store=store, options=TranscodeOptions())
    app.dependency_overrides[get_worker_context] = lambda: worker
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_invoke_processes_batch(client, store) -> None:
    store.add("bucket", "a.png", make_image_bytes(300, 300, fmt="PNG"))
    resp = client.post("/invoke", json={"Records": [sqs_message("bucket", "a.png")]})
    assert resp.status_code == 200
    assert resp.json()["statusCode"] == 200
    assert store.objects[("bucket", "a.png")].metadata == {"optimized": "true"}


def test_invoke_failure_asks_for_redelivery(client, store) -> None:
    resp = client.post("/invoke", json={"Records": [sqs_message("bucket", "missing.jpg")]})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Batch processing failed"}


def test_invoke_without_records_fails(client) -> None:
    resp = client.post("/invoke", json={"hello": "world"})
    assert resp.status_code == 500
