from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.dependencies import require_inspector
from core.database import get_db
from models.user import User
from schemas.trip_segment import (
    ContainerInfoUpdate,
    ContainerNumberRequest,
    ContainerValidationResponse,
    DamageRemarksUpdate,
    DamageStatusResponse,
    DamageStatusUpdate,
    DriverDetailsUpdate,
    LoadStatusResponse,
    LoadStatusUpdate,
    TrailerDetailsResponse,
    TrailerDetailsUpdate,
    TripSegmentCreate,
    TripSegmentResponse,
    TruckDetailsUpdate,
    UpdateResponse,
)
from services.trip_segment_service import TripSegmentService

router = APIRouter(tags=["trip-segments"], dependencies=[Depends(require_inspector)])


# ==================== TRIP SEGMENTS ====================
@router.post("/trip-segments", response_model=TripSegmentResponse, status_code=201)
def create_trip_segment(
    payload: TripSegmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_inspector)
):
    """Open a trip segment for an arriving container."""
    segment = TripSegmentService.create_trip_segment(payload, str(current_user.email), db)
    return TripSegmentService.serialize(segment)


@router.get("/trip-segments", response_model=list[TripSegmentResponse])
def list_trip_segments(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db)
):
    segments = TripSegmentService.list_trip_segments(db, limit)
    return [TripSegmentService.serialize(segment) for segment in segments]


@router.get("/trip-segments/{trip_segment_number}", response_model=TripSegmentResponse)
def get_trip_segment(trip_segment_number: str, db: Session = Depends(get_db)):
    segment = TripSegmentService.get_by_number(trip_segment_number, db)
    return TripSegmentService.serialize(segment)


@router.get("/trip-segments/{trip_segment_number}/damage-status", response_model=DamageStatusResponse)
def get_damage_status(trip_segment_number: str, db: Session = Depends(get_db)):
    """Overall damage flag and every location reported so far."""
    return TripSegmentService.get_damage_status(trip_segment_number, db)


@router.get("/trip-segments/{trip_segment_number}/trailer-details", response_model=TrailerDetailsResponse)
def get_trailer_details(trip_segment_number: str, db: Session = Depends(get_db)):
    return TripSegmentService.get_trailer_details(trip_segment_number, db)


@router.put("/trip-segments/{trip_segment_number}/trailer-details", response_model=UpdateResponse)
def update_trailer_details(
    trip_segment_number: str,
    payload: TrailerDetailsUpdate,
    db: Session = Depends(get_db)
):
    updated = TripSegmentService.update_trailer_details(trip_segment_number, payload, db)
    return {
        "message": "Trailer details updated successfully",
        "trip_segment_number": trip_segment_number,
        "updated_fields": updated,
    }


@router.put("/trip-segments/update-truck-details", response_model=UpdateResponse)
def update_truck_details(payload: TruckDetailsUpdate, db: Session = Depends(get_db)):
    updated = TripSegmentService.update_truck_details(
        payload.trip_segment_number, payload.truck_number, payload.truck_photo, db
    )
    return {
        "message": "Truck details updated successfully",
        "trip_segment_number": payload.trip_segment_number,
        "updated_fields": updated,
    }


@router.put("/trip-segments/update-driver-details", response_model=UpdateResponse)
def update_driver_details(payload: DriverDetailsUpdate, db: Session = Depends(get_db)):
    """Final step of the inspection."""
    updated = TripSegmentService.update_driver_details(payload, db)
    return {
        "message": "Driver details updated successfully",
        "trip_segment_number": payload.trip_segment_number,
        "updated_fields": updated,
    }


# ==================== INSPECTION STEPS ====================
@router.post("/validate-container", response_model=ContainerValidationResponse)
def validate_container(payload: ContainerNumberRequest, db: Session = Depends(get_db)):
    """Check a scanned container number against open trip segments."""
    return TripSegmentService.validate_container(payload.container_number, db)


@router.post("/update-container-info", response_model=UpdateResponse)
def update_container_info(payload: ContainerInfoUpdate, db: Session = Depends(get_db)):
    segment = TripSegmentService.update_container_info(payload, db)
    return {
        "message": f"Container number {segment.container_number} updated successfully",
        "trip_segment_number": segment.trip_segment_number,
        "updated_fields": [
            "isoCode", "containerType", "containerColor", "containerColorCode",
            "containerSize", "inspectorName", "inspectionDate",
        ],
    }


@router.post("/update-damage-status", response_model=DamageStatusResponse)
def update_damage_status(payload: DamageStatusUpdate, db: Session = Depends(get_db)):
    """Answer to the "any damage?" prompt on a wall/inside step."""
    segment = TripSegmentService.update_damage_status(
        payload.trip_segment_number, payload.has_damages, payload.damage_location, db
    )
    return {
        "message": "Damage status updated successfully",
        "trip_segment_number": segment.trip_segment_number,
        "has_damages": segment.has_damages,
        "damage_locations": list(segment.damage_locations or []),
    }


@router.post("/update-container-load-status", response_model=LoadStatusResponse)
def update_container_load_status(payload: LoadStatusUpdate, db: Session = Depends(get_db)):
    segment = TripSegmentService.update_container_load_status(
        payload.trip_segment_number, payload.container_load_status, db
    )
    return {
        "message": "Container load status updated successfully",
        "trip_segment_number": segment.trip_segment_number,
        "container_load_status": segment.container_load_status,
    }


@router.post("/update-damage-remarks", response_model=UpdateResponse)
def update_damage_remarks(payload: DamageRemarksUpdate, db: Session = Depends(get_db)):
    segment = TripSegmentService.update_damage_remarks(payload.trip_segment_number, payload.damage_remarks, db)
    return {
        "message": "Damage remarks saved successfully",
        "trip_segment_number": segment.trip_segment_number,
        "updated_fields": ["damageRemarks"],
    }
