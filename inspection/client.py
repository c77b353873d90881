import base64
import logging
import os
from typing import Callable, Iterable, Optional

import requests
from dotenv import load_dotenv

from inspection.imaging import compress_image

log = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "http://localhost:8000"
# Share of the progress bar spent compressing before the request goes out
PREPARE_SHARE = 90

ProgressCallback = Callable[[int], None]


class InspectionAPIError(Exception):
    """Raised when the backend refuses a call or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


def pick_best_reading(parkpow: dict, google: dict) -> dict:
    """Per field, keep the reader with the higher confidence; ties go to Google Vision."""
    best = {}
    for field in ("containerNumber", "isoCode"):
        confidence_key = f"{field}Confidence"
        parkpow_score = parkpow.get(confidence_key) or 0
        google_score = google.get(confidence_key) or 0
        source = parkpow if parkpow_score > google_score else google
        best[field] = source.get(field) or ""
        best[confidence_key] = max(parkpow_score, google_score)
    return best


class InspectionClient:
    """Thin wrapper over the inspection REST API used by the wizard."""

    def __init__(self, base_url: str, timeout: float = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls, timeout: float = 30) -> "InspectionClient":
        load_dotenv()
        return cls(os.getenv("BACKEND_URL", DEFAULT_BACKEND_URL), timeout=timeout)

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            log.error("%s %s failed: %s", method, path, exc)
            raise InspectionAPIError(f"Could not reach the server: {exc}")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or body.get("success") is False:
            message = body.get("error") or body.get("message") or f"Request failed with status {response.status_code}"
            log.warning("%s %s -> %s: %s", method, path, response.status_code, message)
            raise InspectionAPIError(message, status_code=response.status_code, payload=body)
        return body

    # ==================== AUTH ====================

    def _remember_token(self, body: dict) -> dict:
        token = body.get("accessToken")
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        return body

    def login(self, email: str, password: str) -> dict:
        body = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        return self._remember_token(body)

    def login_with_pin(self, device_id: str, pin: str) -> dict:
        body = self._request("POST", "/api/auth/login-pin", json={"deviceId": device_id, "pin": pin})
        return self._remember_token(body)

    # ==================== TRIP SEGMENT ====================

    def create_trip_segment(self, **fields) -> dict:
        return self._request("POST", "/api/trip-segments", json=fields)

    def validate_container(self, container_number: str) -> dict:
        return self._request("POST", "/api/validate-container", json={"containerNumber": container_number})

    def update_container_info(self, container_number: str, **details) -> dict:
        return self._request("POST", "/api/update-container-info", json={"containerNumber": container_number, **details})

    def get_damage_status(self, trip_segment_number: str) -> dict:
        return self._request("GET", f"/api/trip-segments/{trip_segment_number}/damage-status")

    def update_damage_status(self, trip_segment_number: str, has_damages: str, damage_location: Optional[str]) -> dict:
        return self._request("POST", "/api/update-damage-status", json={
            "tripSegmentNumber": trip_segment_number,
            "hasDamages": has_damages,
            "damageLocation": damage_location,
        })

    def update_load_status(self, trip_segment_number: str, load_status: str) -> dict:
        return self._request("POST", "/api/update-container-load-status", json={
            "tripSegmentNumber": trip_segment_number,
            "containerLoadStatus": load_status,
        })

    def update_damage_remarks(self, trip_segment_number: str, remarks: str) -> dict:
        return self._request("POST", "/api/update-damage-remarks", json={
            "tripSegmentNumber": trip_segment_number,
            "damageRemarks": remarks,
        })

    def update_truck_details(self, trip_segment_number: str, truck_number: str, truck_photo: Optional[str] = None) -> dict:
        return self._request("PUT", "/api/trip-segments/update-truck-details", json={
            "tripSegmentNumber": trip_segment_number,
            "truckNumber": truck_number,
            "truckPhoto": truck_photo,
        })

    def update_trailer_details(self, trip_segment_number: str, trailer_number: str, trailer_photo: Optional[str] = None) -> dict:
        return self._request("PUT", f"/api/trip-segments/{trip_segment_number}/trailer-details", json={
            "trailerNumber": trailer_number,
            "trailerPhoto": trailer_photo,
        })

    def update_driver_details(self, trip_segment_number: str, **details) -> dict:
        return self._request("PUT", "/api/trip-segments/update-driver-details", json={
            "tripSegmentNumber": trip_segment_number,
            **details,
        })

    # ==================== RECOGNITION ====================

    def _recognize(self, path: str, image_bytes: bytes) -> dict:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        body = self._request("POST", path, json={"base64Image": encoded})
        return body.get("data", {})

    def recognize_plate(self, image_bytes: bytes) -> dict:
        return self._recognize("/api/plate-recognizer/recognize", image_bytes)

    def read_container_parkpow(self, image_bytes: bytes) -> dict:
        return self._recognize("/api/vision/process-image", image_bytes)

    def read_container_text(self, image_bytes: bytes) -> dict:
        return self._recognize("/api/vision/google-vision", image_bytes)

    def detect_container_color(self, image_bytes: bytes) -> dict:
        return self._recognize("/api/vision/google-vision-color", image_bytes)

    def extract_driver_details(self, image_bytes: bytes) -> dict:
        return self._recognize("/api/vision/extract-driver-details", image_bytes)

    # ==================== PHOTOS ====================

    def upload_photo(self, kind: str, trip_segment_number: str, image_bytes: bytes, filename: Optional[str] = None) -> dict:
        """Single photo for a trip segment column, e.g. ``kind="back-wall"``."""
        name = filename or f"{kind.replace('-', '_')}.jpg"
        return self._request(
            "POST",
            f"/api/upload/s3-{kind}-photo",
            data={"tripSegmentNumber": trip_segment_number},
            files={"photo": (name, image_bytes, "image/jpeg")},
        )

    def upload_batch(
        self,
        category: str,
        trip_segment_number: str,
        container_number: str,
        images: Iterable[bytes],
        location: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        compress: bool = True
    ) -> dict:
        """Send damage or container photos in one multipart request.

        ``progress`` receives 0-100: compression of each photo moves it up to
        90, the server's answer takes it to 100.
        """
        if category not in {"damage", "container"}:
            raise ValueError(f"Unknown photo category '{category}'")

        images = list(images)
        if not images:
            raise ValueError("At least one photo is required")

        report = progress or (lambda percent: None)
        report(0)

        files = []
        for index, image in enumerate(images, start=1):
            payload = compress_image(image) if compress else image
            files.append(("photos", (f"{category}_{index}.jpg", payload, "image/jpeg")))
            report(PREPARE_SHARE * index // len(images))

        location_field = "damageLocation" if category == "damage" else "containerPhotoLocation"
        data = {"tripSegmentNumber": trip_segment_number, "containerNumber": container_number}
        if location:
            data[location_field] = location

        body = self._request("POST", f"/api/upload/s3-{category}-photos", data=data, files=files)
        report(100)
        log.info("Uploaded %d %s photo(s) for %s", len(files), category, trip_segment_number)
        return body
