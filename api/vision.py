from fastapi import APIRouter, Depends

from api.dependencies import require_inspector
from schemas.vision import (
    ContainerColorResponse,
    ContainerReadingResponse,
    DriverDetailsReadingResponse,
    VisionRequest,
)
from services import vision_service

router = APIRouter(prefix="/vision", tags=["vision"], dependencies=[Depends(require_inspector)])


@router.post("/process-image", response_model=ContainerReadingResponse)
def process_image(payload: VisionRequest):
    """Container number and ISO code via ParkPow."""
    return {"data": vision_service.read_container_parkpow(payload.base64_image)}


@router.post("/google-vision", response_model=ContainerReadingResponse)
def google_vision(payload: VisionRequest):
    return {"data": vision_service.read_container_text(payload.base64_image)}


@router.post("/google-vision-color", response_model=ContainerColorResponse)
def google_vision_color(payload: VisionRequest):
    """Container text plus the photo's dominant colour."""
    return {"data": vision_service.read_container_color(payload.base64_image)}


@router.post("/extract-driver-details", response_model=DriverDetailsReadingResponse)
def extract_driver_details(payload: VisionRequest):
    result = vision_service.extract_driver_details(payload.base64_image)
    return {"data": result["details"], "raw_text": result["raw_text"]}
