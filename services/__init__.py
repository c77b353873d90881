"""
Services module - Business logic layer for the container inspection backend.
"""
from services.auth_service import AuthService
from services.photo_service import PhotoService
from services.trip_segment_service import TripSegmentService

__all__ = ["AuthService", "PhotoService", "TripSegmentService"]
