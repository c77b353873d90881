from typing import Optional

from schemas.common import CamelModel, SuccessResponse


class StoredPhoto(CamelModel):
    location: str
    url: str
    size_bytes: int


class SinglePhotoUploadResponse(SuccessResponse):
    trip_segment_number: str
    photo_kind: str
    url: str


class BatchPhotoUploadResponse(SuccessResponse):
    trip_segment_number: str
    uploaded_files: list[str]
    photos: list[StoredPhoto]


class PlateRecognitionRequest(CamelModel):
    base64_image: Optional[str] = None


class PlateRecognition(CamelModel):
    licence_plate: str
    confidence: float
    raw_response: dict


class PlateRecognitionResponse(SuccessResponse):
    data: PlateRecognition
