import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inspection.containers import lookup_iso_code
from models.trip_segment import PhotoCategory, TripSegment
from schemas.trip_segment import (
    ContainerInfoUpdate,
    DriverDetailsUpdate,
    TrailerDetailsUpdate,
    TripSegmentCreate,
    normalize_container_number,
)

log = logging.getLogger(__name__)

NUMBER_PREFIX = "ST"
NUMBER_WIDTH = 5
DEFAULT_TRANSPORTER = "Local Transporter"
ARRIVED_STATUS = "Arrived"


def number_prefix(at_time: Optional[datetime] = None) -> str:
    year = (at_time or datetime.utcnow()).strftime("%y")
    return f"{NUMBER_PREFIX}{year}-"


def require_trip_segment_number(value: Optional[str]) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail="Trip segment number is required")
    return cleaned


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


class TripSegmentService:
    """Service layer for the trip segment record the inspection fills in."""

    @staticmethod
    def generate_trip_segment_number(db: Session, at_time: Optional[datetime] = None) -> str:
        """Next number in the yearly sequence, e.g. ST26-00001 after a new year."""
        prefix = number_prefix(at_time)
        numbers = db.query(TripSegment.trip_segment_number).filter(
            TripSegment.trip_segment_number.like(f"{prefix}%")
        ).all()

        highest = 0
        for (number,) in numbers:
            suffix = number[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))

        return f"{prefix}{highest + 1:0{NUMBER_WIDTH}d}"

    @staticmethod
    def create_trip_segment(payload: TripSegmentCreate, username: Optional[str], db: Session) -> TripSegment:
        segment = TripSegment(
            trip_segment_number=TripSegmentService.generate_trip_segment_number(db),
            username=username,
            **payload.model_dump(),
        )
        db.add(segment)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=409, detail="Trip segment number already taken, please retry")
        db.refresh(segment)
        log.info("Created trip segment %s for container %s", segment.trip_segment_number, segment.container_number)
        return segment

    @staticmethod
    def list_trip_segments(db: Session, limit: int = 50) -> list[TripSegment]:
        return db.query(TripSegment).order_by(TripSegment.created_at.desc()).limit(limit).all()

    @staticmethod
    def get_by_number(trip_segment_number: Optional[str], db: Session, for_update: bool = False) -> TripSegment:
        number = require_trip_segment_number(trip_segment_number)
        query = db.query(TripSegment).filter(TripSegment.trip_segment_number == number)
        if for_update:
            query = query.with_for_update()
        segment = query.first()
        if not segment:
            log.warning("Trip segment %s not found", number)
            raise HTTPException(status_code=404, detail=f"Trip segment {number} not found")
        return segment

    @staticmethod
    def find_by_container_number(container_number: str, db: Session) -> Optional[TripSegment]:
        """Exact match first, then the space-free form OCR usually breaks."""
        trimmed = container_number.strip()
        segment = db.query(TripSegment).filter(TripSegment.container_number == trimmed).first()
        if segment:
            return segment

        normalized = normalize_container_number(trimmed)
        return db.query(TripSegment).filter(TripSegment.container_number == normalized).first()

    @staticmethod
    def validate_container(container_number: Optional[str], db: Session) -> dict:
        if not container_number or not container_number.strip():
            raise HTTPException(status_code=400, detail="Container number is required")

        segment = TripSegmentService.find_by_container_number(container_number, db)
        if not segment:
            return {
                "exists": False,
                "message": f"Container number {container_number} does not exist in the database",
            }

        return {
            "exists": True,
            "message": f"Container number {container_number} exists in the database",
            "container_data": {
                "container_number": segment.container_number,
                "trip_segment_number": segment.trip_segment_number,
            },
        }

    @staticmethod
    def update_container_info(payload: ContainerInfoUpdate, db: Session) -> TripSegment:
        if not payload.container_number or not payload.container_number.strip():
            raise HTTPException(status_code=400, detail="Container number is required")

        segment = TripSegmentService.find_by_container_number(payload.container_number, db)
        if not segment:
            raise HTTPException(
                status_code=404,
                detail=f"Container number {payload.container_number} not found in database"
            )

        # Known ISO codes fill in whatever the inspector left blank
        known = lookup_iso_code(payload.iso_code)
        segment.iso_code = payload.iso_code or None  # type: ignore[assignment]
        segment.container_type = payload.container_type or (known.container_type if known else None)  # type: ignore[assignment]
        segment.container_color = payload.container_color or None  # type: ignore[assignment]
        segment.container_color_code = payload.container_color_code or None  # type: ignore[assignment]
        segment.container_size = payload.container_size or (known.size if known else None)  # type: ignore[assignment]
        segment.inspector_name = payload.inspector_name or None  # type: ignore[assignment]
        segment.inspection_date = payload.inspection_date or _now_iso()  # type: ignore[assignment]

        db.commit()
        db.refresh(segment)
        log.info("Updated container info for %s", segment.container_number)
        return segment

    @staticmethod
    def update_damage_status(
        trip_segment_number: Optional[str],
        has_damages: Optional[str],
        damage_location: Optional[str],
        db: Session
    ) -> TripSegment:
        # Row lock keeps concurrent posts from dropping each other's location
        segment = TripSegmentService.get_by_number(trip_segment_number, db, for_update=True)
        segment.has_damages = has_damages  # type: ignore[assignment]

        location = (damage_location or "").strip()
        if location:
            locations = list(segment.damage_locations or [])
            if location not in locations:
                # Reassign so the JSON column is flagged dirty
                segment.damage_locations = locations + [location]  # type: ignore[assignment]

        db.commit()
        db.refresh(segment)
        log.info(
            "Trip segment %s damage status set to %s (%s)",
            segment.trip_segment_number, has_damages, location or "no location"
        )
        return segment

    @staticmethod
    def get_damage_status(trip_segment_number: str, db: Session) -> dict:
        segment = TripSegmentService.get_by_number(trip_segment_number, db)
        return {
            "trip_segment_number": segment.trip_segment_number,
            "has_damages": segment.has_damages,
            "damage_locations": list(segment.damage_locations or []),
        }

    @staticmethod
    def update_container_load_status(
        trip_segment_number: Optional[str],
        container_load_status: Optional[str],
        db: Session
    ) -> TripSegment:
        require_trip_segment_number(trip_segment_number)
        status_value = (container_load_status or "").strip()
        if not status_value:
            raise HTTPException(status_code=400, detail="Container load status is required")

        segment = TripSegmentService.get_by_number(trip_segment_number, db)
        segment.container_load_status = status_value  # type: ignore[assignment]
        db.commit()
        db.refresh(segment)
        return segment

    @staticmethod
    def update_damage_remarks(trip_segment_number: Optional[str], remarks: str, db: Session) -> TripSegment:
        segment = TripSegmentService.get_by_number(trip_segment_number, db)
        segment.damage_remarks = remarks.strip() or None  # type: ignore[assignment]
        db.commit()
        db.refresh(segment)
        return segment

    @staticmethod
    def update_truck_details(
        trip_segment_number: Optional[str],
        truck_number: Optional[str],
        truck_photo: Optional[str],
        db: Session
    ) -> list[str]:
        segment = TripSegmentService.get_by_number(trip_segment_number, db)
        updated = []
        if truck_number is not None:
            segment.truck_number = truck_number.strip().upper() or None  # type: ignore[assignment]
            updated.append("truckNumber")
        if truck_photo:
            segment.truck_photo = truck_photo  # type: ignore[assignment]
            updated.append("truckPhoto")
        db.commit()
        return updated

    @staticmethod
    def get_trailer_details(trip_segment_number: str, db: Session) -> dict:
        segment = TripSegmentService.get_by_number(trip_segment_number, db)
        return {
            "trip_segment_number": segment.trip_segment_number,
            "trailer_number": segment.trailer_number,
            "trailer_photo": segment.trailer_photo,
        }

    @staticmethod
    def update_trailer_details(trip_segment_number: str, payload: TrailerDetailsUpdate, db: Session) -> list[str]:
        segment = TripSegmentService.get_by_number(trip_segment_number, db)
        updated = []
        if payload.trailer_number is not None:
            segment.trailer_number = payload.trailer_number.strip().upper() or None  # type: ignore[assignment]
            updated.append("trailerNumber")
        if payload.trailer_photo:
            segment.trailer_photo = payload.trailer_photo  # type: ignore[assignment]
            updated.append("trailerPhoto")
        db.commit()
        return updated

    @staticmethod
    def update_driver_details(payload: DriverDetailsUpdate, db: Session) -> list[str]:
        """Record the driver and close out the inspection."""
        segment = TripSegmentService.get_by_number(payload.trip_segment_number, db)

        segment.transporter_name = payload.transporter_name or DEFAULT_TRANSPORTER  # type: ignore[assignment]
        segment.driver_first_name = payload.driver_first_name or ""  # type: ignore[assignment]
        segment.driver_last_name = payload.driver_last_name or ""  # type: ignore[assignment]
        segment.driver_licence_number = payload.driver_licence_number or ""  # type: ignore[assignment]
        segment.driver_phone_number = payload.driver_phone_number or ""  # type: ignore[assignment]
        segment.container_status = payload.container_status or ARRIVED_STATUS  # type: ignore[assignment]
        updated = [
            "transporterName",
            "driverFirstName",
            "driverLastName",
            "driverLicenceNumber",
            "driverPhoneNumber",
            "containerStatus",
        ]

        if payload.driver_photo:
            segment.driver_photo = payload.driver_photo  # type: ignore[assignment]
            updated.append("driverPhoto")

        segment.final_approval = True  # type: ignore[assignment]
        if not segment.gate_in_time_stamp:
            segment.gate_in_time_stamp = _now_iso()  # type: ignore[assignment]

        db.commit()
        log.info("Trip segment %s finalized with driver details", segment.trip_segment_number)
        return updated

    @staticmethod
    def serialize(segment: TripSegment) -> dict:
        data = {
            column.name: getattr(segment, column.name)
            for column in TripSegment.__table__.columns
        }
        data["damage_locations"] = list(segment.damage_locations or [])
        data["container_photos"] = segment.photos_in(PhotoCategory.CONTAINER)
        data["damage_photos"] = segment.photos_in(PhotoCategory.DAMAGE)
        return data
