import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

from api.app import create_app  # noqa: E402
from conftest import reds  # noqa: E402


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_describe_algorithm(client):
    response = client.get("/algorithms/Resize(4)+Flatten:L2")
    assert response.status_code == 200
    body = response.json()
    assert body["classifier"] is False
    assert body["stage"] == "Resize(width=4,height=4)+Flatten"
    assert body["distance"] == "L2"


def test_compare_returns_scores(client, image_dir, tmp_path):
    targets = image_dir("targets", reds(10, 20))
    queries = image_dir("queries", reds(13))
    response = client.post(
        "/compare",
        json={
            "target": str(targets),
            "query": str(queries),
            "output": str(tmp_path / "scores.npy"),
            "algorithm": "FaceDetect:L1",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["scores"] == [[-3.0, -7.0]]
    assert body["queries"] == [str(queries / "000.png")]


def test_enroll_and_deduplicate(client, image_dir, tmp_path):
    folder = image_dir("faces", reds(5, 5, 9))
    enrolled = client.post("/enroll", json={"input": str(folder), "gallery": str(tmp_path / "faces.gal"), "algorithm": "FaceDetect"})
    assert enrolled.status_code == 200
    assert len(enrolled.json()["records"]) == 3

    kept = client.post(
        "/deduplicate",
        json={"input": str(folder), "output": str(tmp_path / "unique.gal"), "threshold": -1, "algorithm": "FaceDetect:L2"},
    )
    assert kept.status_code == 200
    assert kept.json()["kept"] == [str(folder / "000.png"), str(folder / "002.png")]


def test_errors_map_to_bad_request(client, image_dir, tmp_path):
    assert client.get("/algorithms/Missing:L2").status_code == 400
    assert client.post("/compare", json={}).status_code == 400

    targets = image_dir("targets", reds(1, 2))
    queries = image_dir("queries", reds(1))
    response = client.post(
        "/pairwise", json={"target": str(targets), "query": str(queries), "algorithm": "FaceDetect:L2"}
    )
    assert response.status_code == 400
