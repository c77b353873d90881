from typing import Optional

from schemas.common import CamelModel, SuccessResponse


class VisionRequest(CamelModel):
    base64_image: Optional[str] = None


class ContainerReading(CamelModel):
    container_number: str
    iso_code: str
    container_number_confidence: float = 0.0
    iso_code_confidence: float = 0.0
    raw_text: Optional[str] = None


class ColorDetails(CamelModel):
    rgb: dict
    hex: str
    name: str
    score: Optional[float] = None
    pixel_fraction: Optional[float] = None


class ContainerColorReading(CamelModel):
    container_number: str
    iso_code: str
    container_color: str
    color_hex: str
    color_details: Optional[ColorDetails] = None
    raw_text: str


class DriverDetailsReading(CamelModel):
    first_name: str
    last_name: str
    full_name: str
    phone_number: str
    licence_number: str
    transporter_name: str


class ContainerReadingResponse(SuccessResponse):
    data: ContainerReading


class ContainerColorResponse(SuccessResponse):
    data: ContainerColorReading


class DriverDetailsReadingResponse(SuccessResponse):
    data: DriverDetailsReading
    raw_text: str
