"""
TripSegment SQLAlchemy model: one record per container inspection pass.

The record is created when the container arrives and is filled in step by
step as the inspector walks the container. Multi-photo evidence lives in
``TripSegmentPhoto`` rows; single photos are plain URL columns.
"""
from __future__ import annotations
from datetime import datetime
from enum import Enum as PyEnum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from core.config import ECD_NAME
from core.database import Base


class PhotoCategory(PyEnum):
    """Kinds of photo that accumulate as lists on a trip segment."""
    CONTAINER = "CONTAINER"
    DAMAGE = "DAMAGE"


class YardHalf(PyEnum):
    LEFT = "left"
    RIGHT = "right"


class TripSegment(Base):
    __tablename__ = "trip_segments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    trip_segment_number = Column(
        String(20),
        unique=True,
        index=True,
        nullable=False,
        doc="Yearly sequence number, e.g. ST26-00042"
    )

    # Booking / manifest
    bl_number = Column(String(60), nullable=False)
    container_number = Column(String(20), nullable=False, index=True)
    shipping_line = Column(String(120), nullable=False)
    vessel_name = Column(String(120), nullable=True)
    voyage_number = Column(String(60), nullable=True)
    cf_agent = Column(String(120), nullable=True)
    booking_number = Column(String(60), nullable=True)
    destination = Column(String(120), nullable=True)
    username = Column(String(120), nullable=True)
    ecd_name = Column(String(120), nullable=False, default=ECD_NAME)

    # Container identification
    iso_code = Column(String(10), nullable=True)
    container_type = Column(String(60), nullable=True)
    container_color = Column(String(60), nullable=True)
    container_color_code = Column(String(20), nullable=True)
    container_size = Column(String(20), nullable=True)
    container_condition = Column(String(60), nullable=True)
    container_load_status = Column(String(40), nullable=True)

    # Inspection
    inspector_name = Column(String(120), nullable=True)
    inspection_date = Column(String(40), nullable=True)
    final_approval = Column(Boolean, nullable=True)

    # Single photo evidence (public URLs)
    truck_photo = Column(String, nullable=True)
    trailer_photo = Column(String, nullable=True)
    front_wall_photo = Column(String, nullable=True)
    back_wall_photo = Column(String, nullable=True)
    left_side_photo = Column(String, nullable=True)
    right_side_photo = Column(String, nullable=True)
    inside_photo = Column(String, nullable=True)
    driver_photo = Column(String, nullable=True)

    # Haulage
    transporter_name = Column(String(120), nullable=True)
    truck_number = Column(String(30), nullable=True)
    trailer_number = Column(String(30), nullable=True)
    driver_first_name = Column(String(80), nullable=True)
    driver_last_name = Column(String(80), nullable=True)
    driver_phone_number = Column(String(40), nullable=True)
    driver_licence_number = Column(String(60), nullable=True)

    # Damage
    has_damages = Column(String(3), nullable=True, doc="'Yes', 'No' or unset")
    damage_locations = Column(JSON, nullable=False, default=list)
    damage_remarks = Column(Text, nullable=True)
    damage_description = Column(Text, nullable=True)

    # Yard
    container_yard_location = Column(String(60), nullable=True)
    container_yard_half = Column(Enum(YardHalf, native_enum=False, values_callable=lambda e: [m.value for m in e]), nullable=True)
    container_zone_location = Column(String(60), nullable=True)
    container_yard_location_status = Column(Boolean, nullable=False, default=False)
    container_movement = Column(JSON, nullable=False, default=list)

    gate_in_time_stamp = Column(String(40), nullable=True)
    gate_out_time_stamp = Column(String(40), nullable=True)
    container_eta = Column(String(40), nullable=True)
    container_status = Column(String(40), nullable=False, default="Not Received")

    # Billing
    inward_lolo_payment = Column(String(20), nullable=False, default="Unpaid")
    inward_lolo_balance = Column(Float, nullable=True)
    inward_lolo_amount_received = Column(JSON, nullable=False, default=list)
    outward_lolo_payment = Column(String(20), nullable=False, default="Unpaid")
    outward_lolo_balance = Column(Float, nullable=True)
    proforma = Column(String, nullable=True)
    final_receipt = Column(String, nullable=True)
    storage_charges = Column(Float, nullable=False, default=0)
    storage_days = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    photos = relationship(
        "TripSegmentPhoto",
        back_populates="trip_segment",
        cascade="all, delete-orphan",
        order_by="TripSegmentPhoto.uploaded_at",
    )

    def photos_in(self, category: PhotoCategory) -> list["TripSegmentPhoto"]:
        return [photo for photo in self.photos if photo.category == category]

    def __repr__(self) -> str:
        return (
            f"<TripSegment(number={self.trip_segment_number}, "
            f"container_number={self.container_number}, has_damages={self.has_damages})>"
        )


class TripSegmentPhoto(Base):
    __tablename__ = "trip_segment_photos"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trip_segment_id = Column(UUID(as_uuid=True), ForeignKey("trip_segments.id", ondelete="CASCADE"), nullable=False)
    category = Column(Enum(PhotoCategory, native_enum=False), nullable=False)
    location = Column(String(80), nullable=False)
    url = Column(String, nullable=False)
    storage_key = Column(String, nullable=False)
    size_bytes = Column(Integer, nullable=False, default=0)
    uploaded_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    trip_segment = relationship("TripSegment", back_populates="photos")
