import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from api.dependencies import require_inspector
from core.database import get_db
from models.trip_segment import PhotoCategory
from schemas.upload import BatchPhotoUploadResponse, SinglePhotoUploadResponse
from services.photo_service import PhotoService

router = APIRouter(prefix="/upload", tags=["uploads"], dependencies=[Depends(require_inspector)])

log = logging.getLogger(__name__)


@router.post("/s3-damage-photos", response_model=BatchPhotoUploadResponse)
def upload_damage_photos(
    tripSegmentNumber: Optional[str] = Form(None),
    containerNumber: Optional[str] = Form(None),
    damageLocation: Optional[str] = Form(None),
    photos: list[UploadFile] = File(default=[]),
    db: Session = Depends(get_db)
):
    """Damage evidence for one wall of the container (up to 10 photos)."""
    log.info(
        "Damage photo upload for %s (%s): %d file(s) at %s",
        tripSegmentNumber, containerNumber, len(photos), damageLocation
    )
    return PhotoService.upload_batch(PhotoCategory.DAMAGE, tripSegmentNumber, photos, damageLocation, db)


@router.post("/s3-container-photos", response_model=BatchPhotoUploadResponse)
def upload_container_photos(
    tripSegmentNumber: Optional[str] = Form(None),
    containerNumber: Optional[str] = Form(None),
    containerPhotoLocation: Optional[str] = Form(None),
    photos: list[UploadFile] = File(default=[]),
    db: Session = Depends(get_db)
):
    log.info(
        "Container photo upload for %s (%s): %d file(s)",
        tripSegmentNumber, containerNumber, len(photos)
    )
    return PhotoService.upload_batch(
        PhotoCategory.CONTAINER, tripSegmentNumber, photos, containerPhotoLocation, db
    )


@router.post("/mobile-photos", response_model=BatchPhotoUploadResponse)
def upload_mobile_photos(
    tripSegmentNumber: Optional[str] = Form(None),
    containerNumber: Optional[str] = Form(None),
    photoType: Optional[str] = Form(None),
    photos: list[UploadFile] = File(default=[]),
    db: Session = Depends(get_db)
):
    log.info("Mobile photo upload (%s) for %s (%s)", photoType, tripSegmentNumber, containerNumber)
    return PhotoService.upload_legacy(photoType, tripSegmentNumber, photos, db)


@router.post("/s3-{kind}-photo", response_model=SinglePhotoUploadResponse)
def upload_single_photo(
    kind: str,
    tripSegmentNumber: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db)
):
    """Trailer, truck, wall, inside and driver photos: one file per trip segment column."""
    return PhotoService.upload_single_photo(kind, tripSegmentNumber, photo, db)
