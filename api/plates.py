from fastapi import APIRouter, Depends

from api.dependencies import require_inspector
from schemas.upload import PlateRecognitionRequest, PlateRecognitionResponse
from services.plate_service import recognize_plate

router = APIRouter(prefix="/plate-recognizer", tags=["plates"], dependencies=[Depends(require_inspector)])


@router.post("/recognize", response_model=PlateRecognitionResponse)
def recognize(payload: PlateRecognitionRequest):
    """Read a truck or trailer licence plate from a base64 photo."""
    return {"data": recognize_plate(payload.base64_image)}
