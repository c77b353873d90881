import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy.orm import Session

from core import config
from models.trip_segment import PhotoCategory, TripSegmentPhoto
from services.trip_segment_service import TripSegmentService, require_trip_segment_number

log = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}


@dataclass(frozen=True)
class SinglePhotoKind:
    column: str
    folder: str
    prefix: str


# URL slug -> where the photo lands on the trip segment
SINGLE_PHOTO_KINDS = {
    "trailer": SinglePhotoKind("trailer_photo", "trailer-photos", "trailer"),
    "front-wall": SinglePhotoKind("front_wall_photo", "front-wall-photos", "front_wall"),
    "back-wall": SinglePhotoKind("back_wall_photo", "back-wall-photos", "back_wall"),
    "truck": SinglePhotoKind("truck_photo", "truck-photos", "truck"),
    "left-side": SinglePhotoKind("left_side_photo", "left-side-photos", "left_side"),
    "right-side": SinglePhotoKind("right_side_photo", "right-side-photos", "right_side"),
    "inside": SinglePhotoKind("inside_photo", "inside-photos", "inside"),
    "driver": SinglePhotoKind("driver_photo", "driver-photos", "driver"),
}

BATCH_FOLDERS = {
    PhotoCategory.CONTAINER: ("container-photos", "container", "Container Back Wall"),
    PhotoCategory.DAMAGE: ("damage-photos", "damage", "Unknown"),
}


def build_storage_key(folder: str, trip_segment_number: str, prefix: str, filename: Optional[str]) -> str:
    extension = Path(filename or "").suffix.lower() or ".jpg"
    millis = int(time.time() * 1000)
    return f"{folder}/{trip_segment_number}/{prefix}_{millis}{extension}"


def build_public_url(key: str) -> str:
    return f"{config.PUBLIC_BASE_URL}/{key}"


def read_image(photo: UploadFile) -> bytes:
    """Validate type and size, returning the payload."""
    if photo.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type. Only JPEG, PNG, and WebP are allowed.")
    contents = photo.file.read()
    if len(contents) > config.MAX_IMAGE_SIZE:
        raise HTTPException(status_code=400, detail="File too large. Maximum 10MB.")
    if not contents:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return contents


def store_object(key: str, contents: bytes) -> Path:
    path = config.UPLOAD_DIR / key
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(contents)
    return path


def _unique_key(folder: str, trip_segment_number: str, prefix: str, filename: Optional[str], taken: set) -> str:
    key = build_storage_key(folder, trip_segment_number, prefix, filename)
    # Several files of one batch can land in the same millisecond
    counter = 1
    base, dot, ext = key.rpartition(".")
    while key in taken:
        key = f"{base}_{counter}{dot}{ext}"
        counter += 1
    taken.add(key)
    return key


class PhotoService:
    """Stores inspection photos and links them to the trip segment."""

    @staticmethod
    def get_kind(kind: str) -> SinglePhotoKind:
        target = SINGLE_PHOTO_KINDS.get(kind)
        if target is None:
            raise HTTPException(status_code=404, detail=f"Unknown photo type '{kind}'")
        return target

    @staticmethod
    def upload_single_photo(
        kind: str,
        trip_segment_number: Optional[str],
        photo: Optional[UploadFile],
        db: Session
    ) -> dict:
        target = PhotoService.get_kind(kind)
        number = require_trip_segment_number(trip_segment_number)
        if photo is None:
            raise HTTPException(status_code=400, detail="No file uploaded")

        contents = read_image(photo)
        segment = TripSegmentService.get_by_number(number, db)

        key = build_storage_key(target.folder, number, target.prefix, photo.filename)
        store_object(key, contents)
        url = build_public_url(key)

        setattr(segment, target.column, url)
        db.commit()
        log.info("Stored %s photo for trip segment %s at %s", kind, number, key)

        return {
            "message": f"Successfully uploaded {kind.replace('-', ' ')} photo",
            "trip_segment_number": number,
            "photo_kind": kind,
            "url": url,
        }

    @staticmethod
    def upload_batch(
        category: PhotoCategory,
        trip_segment_number: Optional[str],
        photos: Optional[list[UploadFile]],
        location: Optional[str],
        db: Session
    ) -> dict:
        number = require_trip_segment_number(trip_segment_number)
        if not photos:
            raise HTTPException(status_code=400, detail="No files uploaded")
        if len(photos) > config.MAX_BATCH_FILES:
            raise HTTPException(
                status_code=400,
                detail=f"Too many files. Maximum {config.MAX_BATCH_FILES} per upload."
            )

        payloads = [(photo.filename, read_image(photo)) for photo in photos]
        segment = TripSegmentService.get_by_number(number, db)

        folder, prefix, default_location = BATCH_FOLDERS[category]
        label = (location or "").strip() or default_location

        rows, keys, taken = [], [], set()
        for filename, contents in payloads:
            key = _unique_key(folder, number, prefix, filename, taken)
            try:
                store_object(key, contents)
            except OSError as exc:
                log.warning("Failed to store %s for %s: %s", filename, number, exc, exc_info=True)
                continue

            keys.append(key)
            rows.append(TripSegmentPhoto(
                category=category,
                location=label,
                url=build_public_url(key),
                storage_key=key,
                size_bytes=len(contents),
            ))

        if not rows:
            raise HTTPException(status_code=500, detail="Failed to store any of the uploaded files")

        segment.photos.extend(rows)
        db.commit()
        log.info("Stored %d %s photos for trip segment %s", len(rows), category.value.lower(), number)

        return {
            "message": f"Successfully uploaded {len(rows)} {category.value.lower()} photos",
            "trip_segment_number": number,
            "uploaded_files": keys,
            "photos": [
                {"location": row.location, "url": row.url, "size_bytes": row.size_bytes}
                for row in rows
            ],
        }

    @staticmethod
    def upload_legacy(
        photo_type: Optional[str],
        trip_segment_number: Optional[str],
        photos: Optional[list[UploadFile]],
        db: Session
    ) -> dict:
        """Older app builds send every photo here with a ``photoType`` tag."""
        kind = (photo_type or "").strip().lower()
        if kind in {"truck", "trailer"}:
            first = photos[0] if photos else None
            result = PhotoService.upload_single_photo(kind, trip_segment_number, first, db)
            return {
                "message": result["message"],
                "trip_segment_number": result["trip_segment_number"],
                "uploaded_files": [result["url"]],
                "photos": [],
            }

        category = PhotoCategory.DAMAGE if kind == "damage" else PhotoCategory.CONTAINER
        return PhotoService.upload_batch(category, trip_segment_number, photos, None, db)

