from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from models.trip_segment import PhotoCategory
from schemas.common import CamelModel, SuccessResponse


def normalize_container_number(value: str) -> str:
    """OCR'd container numbers come back with stray spaces and mixed case."""
    return "".join((value or "").split()).upper()


class TripSegmentCreate(CamelModel):
    bl_number: str = Field(..., min_length=1, max_length=60)
    container_number: str = Field(..., min_length=4, max_length=20)
    shipping_line: str = Field(..., min_length=1, max_length=120)
    vessel_name: Optional[str] = None
    voyage_number: Optional[str] = None
    cf_agent: Optional[str] = None
    booking_number: Optional[str] = None
    destination: Optional[str] = None
    container_eta: Optional[str] = None

    @field_validator("container_number", mode="before")
    @classmethod
    def clean_container_number(cls, v: str) -> str:
        if not isinstance(v, str):
            raise ValueError("Container number must be a string")
        return normalize_container_number(v)


class PhotoResponse(CamelModel):
    id: UUID
    category: PhotoCategory
    location: str
    url: str
    size_bytes: int
    uploaded_at: datetime


class TripSegmentResponse(CamelModel):
    id: UUID
    trip_segment_number: str
    bl_number: str
    container_number: str
    shipping_line: str
    vessel_name: Optional[str] = None
    voyage_number: Optional[str] = None
    ecd_name: str
    iso_code: Optional[str] = None
    container_type: Optional[str] = None
    container_color: Optional[str] = None
    container_color_code: Optional[str] = None
    container_size: Optional[str] = None
    container_load_status: Optional[str] = None
    inspector_name: Optional[str] = None
    inspection_date: Optional[str] = None
    final_approval: Optional[bool] = None
    truck_photo: Optional[str] = None
    trailer_photo: Optional[str] = None
    front_wall_photo: Optional[str] = None
    back_wall_photo: Optional[str] = None
    left_side_photo: Optional[str] = None
    right_side_photo: Optional[str] = None
    inside_photo: Optional[str] = None
    driver_photo: Optional[str] = None
    transporter_name: Optional[str] = None
    truck_number: Optional[str] = None
    trailer_number: Optional[str] = None
    driver_first_name: Optional[str] = None
    driver_last_name: Optional[str] = None
    driver_phone_number: Optional[str] = None
    driver_licence_number: Optional[str] = None
    has_damages: Optional[str] = None
    damage_locations: list[str] = []
    damage_remarks: Optional[str] = None
    container_status: str
    gate_in_time_stamp: Optional[str] = None
    container_photos: list[PhotoResponse] = []
    damage_photos: list[PhotoResponse] = []
    created_at: datetime
    updated_at: datetime


class ContainerNumberRequest(CamelModel):
    container_number: Optional[str] = None


class ContainerRef(CamelModel):
    container_number: str
    trip_segment_number: str


class ContainerValidationResponse(SuccessResponse):
    exists: bool
    container_data: Optional[ContainerRef] = None


class ContainerInfoUpdate(CamelModel):
    container_number: Optional[str] = None
    iso_code: Optional[str] = None
    container_type: Optional[str] = None
    container_color: Optional[str] = None
    container_color_code: Optional[str] = None
    container_size: Optional[str] = None
    inspector_name: Optional[str] = None
    inspection_date: Optional[str] = None


class DamageStatusUpdate(CamelModel):
    trip_segment_number: Optional[str] = None
    has_damages: Optional[str] = None
    damage_location: Optional[str] = None

    @field_validator("has_damages")
    @classmethod
    def check_flag(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        normalized = v.strip().capitalize()
        if normalized not in {"Yes", "No"}:
            raise ValueError("hasDamages must be 'Yes' or 'No'")
        return normalized


class DamageStatusResponse(SuccessResponse):
    trip_segment_number: str
    has_damages: Optional[str] = None
    damage_locations: list[str] = []


class LoadStatusUpdate(CamelModel):
    trip_segment_number: Optional[str] = None
    container_load_status: Optional[str] = None


class LoadStatusResponse(SuccessResponse):
    trip_segment_number: str
    container_load_status: str


class DamageRemarksUpdate(CamelModel):
    trip_segment_number: Optional[str] = None
    damage_remarks: str = ""


class TruckDetailsUpdate(CamelModel):
    trip_segment_number: Optional[str] = None
    truck_number: Optional[str] = None
    truck_photo: Optional[str] = None


class TrailerDetailsUpdate(CamelModel):
    trailer_number: Optional[str] = None
    trailer_photo: Optional[str] = None


class TrailerDetailsResponse(SuccessResponse):
    trip_segment_number: str
    trailer_number: Optional[str] = None
    trailer_photo: Optional[str] = None


class DriverDetailsUpdate(CamelModel):
    trip_segment_number: Optional[str] = None
    transporter_name: Optional[str] = None
    driver_first_name: Optional[str] = None
    driver_last_name: Optional[str] = None
    driver_licence_number: Optional[str] = None
    driver_phone_number: Optional[str] = None
    container_status: Optional[str] = None
    driver_photo: Optional[str] = None


class UpdateResponse(SuccessResponse):
    trip_segment_number: str
    updated_fields: list[str] = []
