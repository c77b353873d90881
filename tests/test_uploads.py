from fastapi.testclient import TestClient

from core import config
from models.trip_segment import PhotoCategory
from services import photo_service


def test_single_photo_sets_column_and_stores_file(client: TestClient, trip_segment, db_session, jpeg_bytes, upload_dir):
    response = client.post(
        "/api/upload/s3-back-wall-photo",
        data={"tripSegmentNumber": "ST26-00001"},
        files={"photo": ("back.jpg", jpeg_bytes, "image/jpeg")},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["photoKind"] == "back-wall"
    assert body["url"].startswith(f"{config.PUBLIC_BASE_URL}/back-wall-photos/ST26-00001/back_wall_")
    assert body["url"].endswith(".jpg")

    key = body["url"][len(config.PUBLIC_BASE_URL) + 1:]
    assert (upload_dir / key).read_bytes() == jpeg_bytes

    db_session.refresh(trip_segment)
    assert trip_segment.back_wall_photo == body["url"]
    assert trip_segment.front_wall_photo is None


def test_single_photo_unknown_kind(client: TestClient, trip_segment, jpeg_bytes):
    response = client.post(
        "/api/upload/s3-roof-photo",
        data={"tripSegmentNumber": "ST26-00001"},
        files={"photo": ("roof.jpg", jpeg_bytes, "image/jpeg")},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Unknown photo type 'roof'"


def test_single_photo_validation(client: TestClient, trip_segment, jpeg_bytes):
    no_number = client.post(
        "/api/upload/s3-truck-photo",
        files={"photo": ("truck.jpg", jpeg_bytes, "image/jpeg")},
    )
    assert no_number.status_code == 400
    assert no_number.json()["error"] == "Trip segment number is required"

    no_file = client.post("/api/upload/s3-truck-photo", data={"tripSegmentNumber": "ST26-00001"})
    assert no_file.status_code == 400
    assert no_file.json()["error"] == "No file uploaded"

    wrong_type = client.post(
        "/api/upload/s3-truck-photo",
        data={"tripSegmentNumber": "ST26-00001"},
        files={"photo": ("notes.txt", b"hello", "text/plain")},
    )
    assert wrong_type.status_code == 400

    missing_segment = client.post(
        "/api/upload/s3-truck-photo",
        data={"tripSegmentNumber": "ST26-04040"},
        files={"photo": ("truck.jpg", jpeg_bytes, "image/jpeg")},
    )
    assert missing_segment.status_code == 404


def test_damage_batch_appends_photos_with_location(client: TestClient, trip_segment, jpeg_factory):
    files = [
        ("photos", (f"damage_{index}.jpg", jpeg_factory(color=(index * 40, 10, 10)), "image/jpeg"))
        for index in range(3)
    ]
    response = client.post(
        "/api/upload/s3-damage-photos",
        data={
            "tripSegmentNumber": "ST26-00001",
            "containerNumber": "MSCU1234567",
            "damageLocation": "Right Wall",
        },
        files=files,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert len(body["uploadedFiles"]) == 3
    assert len(set(body["uploadedFiles"])) == 3
    assert all(key.startswith("damage-photos/ST26-00001/damage_") for key in body["uploadedFiles"])
    assert {photo["location"] for photo in body["photos"]} == {"Right Wall"}

    record = client.get("/api/trip-segments/ST26-00001").json()
    assert len(record["damagePhotos"]) == 3
    assert record["containerPhotos"] == []
    assert record["damagePhotos"][0]["category"] == PhotoCategory.DAMAGE.value


def test_container_batch_defaults_location(client: TestClient, trip_segment, jpeg_bytes):
    response = client.post(
        "/api/upload/s3-container-photos",
        data={"tripSegmentNumber": "ST26-00001", "containerNumber": "MSCU1234567"},
        files=[("photos", ("c.jpg", jpeg_bytes, "image/jpeg"))],
    )
    assert response.status_code == 200, response.text
    assert response.json()["photos"][0]["location"] == "Container Back Wall"


def test_batch_limits(client: TestClient, trip_segment, jpeg_bytes):
    too_many = client.post(
        "/api/upload/s3-damage-photos",
        data={"tripSegmentNumber": "ST26-00001"},
        files=[("photos", (f"{i}.jpg", jpeg_bytes, "image/jpeg")) for i in range(config.MAX_BATCH_FILES + 1)],
    )
    assert too_many.status_code == 400
    assert too_many.json()["error"] == "Too many files. Maximum 10 per upload."

    none = client.post("/api/upload/s3-damage-photos", data={"tripSegmentNumber": "ST26-00001"})
    assert none.status_code == 400
    assert none.json()["error"] == "No files uploaded"


def test_mobile_photos_routes_by_photo_type(client: TestClient, trip_segment, db_session, jpeg_bytes):
    truck = client.post(
        "/api/upload/mobile-photos",
        data={"tripSegmentNumber": "ST26-00001", "photoType": "truck"},
        files=[("photos", ("truck.jpg", jpeg_bytes, "image/jpeg"))],
    )
    assert truck.status_code == 200, truck.text

    damage = client.post(
        "/api/upload/mobile-photos",
        data={"tripSegmentNumber": "ST26-00001", "photoType": "damage"},
        files=[("photos", ("d.jpg", jpeg_bytes, "image/jpeg"))],
    )
    assert damage.status_code == 200, damage.text

    db_session.refresh(trip_segment)
    assert trip_segment.truck_photo == truck.json()["uploadedFiles"][0]
    assert [photo.location for photo in trip_segment.photos] == ["Unknown"]


def _damage_batch(client: TestClient, jpeg_bytes: bytes, count: int):
    return client.post(
        "/api/upload/s3-damage-photos",
        data={"tripSegmentNumber": "ST26-00001", "damageLocation": "Back Wall"},
        files=[("photos", (f"damage_{i}.jpg", jpeg_bytes, "image/jpeg")) for i in range(count)],
    )


def test_batch_skips_files_that_fail_to_store(client: TestClient, trip_segment, db_session, jpeg_bytes, monkeypatch, caplog):
    real_store = photo_service.store_object
    calls = []

    def flaky_store(key, contents):
        calls.append(key)
        if len(calls) == 2:
            raise OSError("disk full")
        return real_store(key, contents)

    monkeypatch.setattr(photo_service, "store_object", flaky_store)

    response = _damage_batch(client, jpeg_bytes, 3)
    assert response.status_code == 200, response.text
    body = response.json()
    assert len(calls) == 3
    assert body["uploadedFiles"] == [calls[0], calls[2]]
    assert "Failed to store damage_1.jpg" in caplog.text

    db_session.refresh(trip_segment)
    assert {photo.storage_key for photo in trip_segment.photos} == {calls[0], calls[2]}


def test_batch_fails_when_nothing_is_stored(client: TestClient, trip_segment, db_session, jpeg_bytes, monkeypatch):
    def broken_store(key, contents):
        raise OSError("read-only file system")

    monkeypatch.setattr(photo_service, "store_object", broken_store)

    response = _damage_batch(client, jpeg_bytes, 2)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to store any of the uploaded files"}

    db_session.refresh(trip_segment)
    assert trip_segment.photos == []
