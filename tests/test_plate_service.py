import base64

import pytest
import requests
from fastapi import HTTPException
from fastapi.testclient import TestClient

from core import config
from services.plate_service import decode_base64_image, recognize_plate


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(config, "PLATERECOGNIZER_API_KEY", "test-token")


def encoded(data: bytes = b"\xff\xd8fake-jpeg") -> str:
    return base64.b64encode(data).decode("ascii")


def test_decode_accepts_data_url():
    assert decode_base64_image("data:image/jpeg;base64," + encoded(b"abc")) == b"abc"


@pytest.mark.parametrize("value", [None, "", "not base64 at all!"])
def test_decode_rejects_bad_input(value):
    with pytest.raises(HTTPException) as exc:
        decode_base64_image(value)
    assert exc.value.status_code == 400


def test_recognize_posts_token_and_region(api_key):
    session = FakeSession(FakeResponse({"results": [{"plate": "t123abc", "score": 0.91}]}))

    result = recognize_plate(encoded(), session=session)

    assert result["licence_plate"] == "T123ABC"
    assert result["confidence"] == pytest.approx(0.91)
    url, kwargs = session.calls[0]
    assert url == config.PLATERECOGNIZER_URL
    assert kwargs["headers"] == {"Authorization": "Token test-token"}
    assert kwargs["data"]["regions"] == config.PLATERECOGNIZER_REGION
    assert kwargs["files"]["upload"][1] == b"\xff\xd8fake-jpeg"


def test_recognize_without_results(api_key):
    session = FakeSession(FakeResponse({"results": []}))
    result = recognize_plate(encoded(), session=session)
    assert result["licence_plate"] == ""
    assert result["confidence"] == 0.0


def test_recognize_without_key(monkeypatch):
    monkeypatch.setattr(config, "PLATERECOGNIZER_API_KEY", None)
    with pytest.raises(HTTPException) as exc:
        recognize_plate(encoded(), session=FakeSession())
    assert exc.value.status_code == 500


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("down")),
        FakeSession(FakeResponse({"detail": "nope"}, status_code=403)),
        FakeSession(FakeResponse(None)),
    ],
)
def test_recognize_upstream_failure(api_key, session):
    with pytest.raises(HTTPException) as exc:
        recognize_plate(encoded(), session=session)
    assert exc.value.status_code == 502


def test_recognize_endpoint(client: TestClient, monkeypatch):
    seen = {}

    def fake_recognize(base64_image):
        seen["image"] = base64_image
        return {"licence_plate": "T123ABC", "confidence": 0.8, "raw_response": {"results": []}}

    monkeypatch.setattr("api.plates.recognize_plate", fake_recognize)

    response = client.post("/api/plate-recognizer/recognize", json={"base64Image": encoded()})
    assert response.status_code == 200, response.text
    assert response.json()["data"]["licencePlate"] == "T123ABC"
    assert seen["image"] == encoded()
