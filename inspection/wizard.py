import logging
from typing import Callable, Iterable, Optional

from inspection.client import InspectionAPIError, InspectionClient, ProgressCallback, pick_best_reading
from inspection.containers import lookup_iso_code
from inspection.geometry import document_guide, wall_guide
from inspection.imaging import crop_to_guide
from inspection.steps import DAMAGE_LOCATIONS, Route, Step, StepNavigator

log = logging.getLogger(__name__)

CONTAINER_PHOTO_LOCATION = "Container Front Wall"

# Side step -> (single photo kind, containerData key)
SIDE_PHOTOS = {
    Step.RIGHT_WALL: ("right-side", "rightSidePhoto"),
    Step.BACK_WALL: ("back-wall", "backWallPhoto"),
    Step.LEFT_WALL: ("left-side", "leftSidePhoto"),
    Step.INSIDE: ("inside", "insidePhoto"),
}

# Sides that also go into the container photo gallery
GALLERY_LOCATIONS = {
    Step.LEFT_WALL: "Container Left Wall",
    Step.INSIDE: "Container Inside",
}

# containerData key -> field of the licence reading
LICENCE_FIELDS = {
    "driverFirstName": "firstName",
    "driverLastName": "lastName",
    "driverLicenceNumber": "licenceNumber",
    "driverPhoneNumber": "phoneNumber",
    "transporterName": "transporterName",
}


class InspectionWizard:
    """Drives one container inspection from the first photo to the driver details.

    ``container_data`` accumulates everything captured so far using the
    backend's camelCase keys, so it can be handed to another screen or
    persisted as-is.
    """

    def __init__(
        self,
        client: InspectionClient,
        screen_width: float,
        screen_height: float,
        container_data: Optional[dict] = None,
        navigator: Optional[StepNavigator] = None
    ):
        self.client = client
        self.screen_width = screen_width
        self.screen_height = screen_height
        self.container_data = dict(container_data or {})
        self.navigator = navigator or StepNavigator()
        self.route = Route(Step.CONTAINER_PHOTO)

    @property
    def step(self) -> Step:
        return self.route.step

    @property
    def trip_segment_number(self) -> str:
        number = self.container_data.get("tripSegmentNumber")
        if not number:
            raise ValueError("No trip segment selected yet")
        return number

    def _require(self, *steps: Step) -> None:
        if self.step not in steps:
            allowed = ", ".join(step.value for step in steps)
            raise RuntimeError(f"Wizard is on {self.step.value}, expected {allowed}")

    def _go(self, route: Route) -> Route:
        log.info("Inspection %s: %s -> %s", self.container_data.get("tripSegmentNumber"), self.step.value, route.step.value)
        self.route = route
        return route

    def _crop(self, image_bytes: bytes, document: bool = False) -> bytes:
        guide = (document_guide if document else wall_guide)(self.screen_width, self.screen_height)
        return crop_to_guide(image_bytes, self.screen_width, self.screen_height, guide)

    def _damage_status(self) -> Optional[dict]:
        try:
            return self.client.get_damage_status(self.trip_segment_number)
        except InspectionAPIError as exc:
            log.warning("Could not fetch damage status: %s", exc.message)
            return None

    def _damage_locations(self) -> list:
        status = self._damage_status()
        return list((status or {}).get("damageLocations") or [])

    def _after_side_capture(self) -> bool:
        """True when the inspector must be asked about damage on this side."""
        if self.navigator.already_damaged(self.step, self._damage_locations()):
            self._go(Route(Step.DAMAGE_PHOTOS, damage_for=self.step))
            return False
        return True

    def _try_read(self, read: Callable[[bytes], dict], image_bytes: bytes, what: str) -> dict:
        """Recognition only pre-fills fields, so failures fall back to manual entry."""
        try:
            return read(image_bytes)
        except InspectionAPIError as exc:
            log.warning("%s failed, falling back to manual entry: %s", what, exc.message)
            return {}

    def _add_to_gallery(self, image_bytes: bytes, location: str) -> None:
        body = self.client.upload_batch(
            "container",
            self.trip_segment_number,
            self.container_data.get("containerNumber", ""),
            [image_bytes],
            location=location,
        )
        photos = self.container_data.setdefault("containerPhotos", [])
        photos.extend(photo["url"] for photo in body.get("photos", []))

    # ==================== SIDES ====================

    def read_container_photo(self, image_bytes: bytes) -> dict:
        """Container number and ISO code from both readers, best confidence per field."""
        self._require(Step.CONTAINER_PHOTO)
        cropped = self._crop(image_bytes)
        parkpow = self._try_read(self.client.read_container_parkpow, cropped, "ParkPow reading")
        google = self._try_read(self.client.read_container_text, cropped, "Google Vision reading")
        return pick_best_reading(parkpow, google)

    def capture_container_photo(
        self,
        image_bytes: bytes,
        container_number: Optional[str] = None,
        iso_code: Optional[str] = None
    ) -> bool:
        """First photo: ties the wizard to the trip segment registered for the container.

        Without a typed container number the photo is read by OCR first.
        """
        self._require(Step.CONTAINER_PHOTO)
        if not container_number:
            reading = self.read_container_photo(image_bytes)
            container_number = reading["containerNumber"]
            iso_code = iso_code or reading["isoCode"]
        if not container_number:
            raise ValueError("No container number could be read, enter it manually")

        result = self.client.validate_container(container_number)
        if not result.get("exists"):
            raise InspectionAPIError(result.get("message") or f"Container number {container_number} is not registered")

        container = result["containerData"]
        self.container_data.update({
            "containerNumber": container["containerNumber"],
            "tripSegmentNumber": container["tripSegmentNumber"],
        })
        if iso_code:
            self.container_data["isoCode"] = iso_code

        cropped = self._crop(image_bytes)
        color = self._try_read(self.client.detect_container_color, cropped, "Colour detection")
        if color.get("containerColor"):
            self.container_data["containerColor"] = color["containerColor"]
            self.container_data["colorHex"] = color.get("colorHex", "")

        self._add_to_gallery(cropped, CONTAINER_PHOTO_LOCATION)
        return self._after_side_capture()

    def capture_side(self, image_bytes: bytes) -> bool:
        """Right, back, left wall or inside photo."""
        self._require(*SIDE_PHOTOS)
        kind, key = SIDE_PHOTOS[self.step]
        cropped = self._crop(image_bytes)
        body = self.client.upload_photo(kind, self.trip_segment_number, cropped)
        self.container_data[key] = body["url"]

        location = GALLERY_LOCATIONS.get(self.step)
        if location:
            self._add_to_gallery(cropped, location)
        return self._after_side_capture()

    def answer_damage(self, is_damaged: bool) -> Route:
        self._require(*DAMAGE_LOCATIONS)
        side = self.step

        if is_damaged:
            try:
                self.client.update_damage_status(self.trip_segment_number, "Yes", DAMAGE_LOCATIONS[side])
            except InspectionAPIError as exc:
                log.warning("Saving damage on %s failed, continuing: %s", DAMAGE_LOCATIONS[side], exc.message)
            return self._go(self.navigator.after_damage_answer(side, True))

        has_damages = None
        if side is Step.INSIDE:
            status = self._damage_status()
            if status is not None:
                has_damages = status.get("hasDamages") or "No"
        return self._go(self.navigator.after_damage_answer(side, False, has_damages))

    def submit_damage_photos(self, images: Iterable[bytes], progress: Optional[ProgressCallback] = None) -> Route:
        self._require(Step.DAMAGE_PHOTOS)
        side = self.route.damage_for
        location = DAMAGE_LOCATIONS[side]

        body = self.client.upload_batch(
            "damage",
            self.trip_segment_number,
            self.container_data.get("containerNumber", ""),
            images,
            location=location,
            progress=progress,
        )
        photos = self.container_data.setdefault("damagePhotos", {})
        photos.setdefault(location, []).extend(photo["url"] for photo in body.get("photos", []))
        return self._go(self.navigator.after_damage_photos(side))

    # ==================== DETAILS ====================

    def save_container_details(self, load_status: Optional[str] = None, **details) -> Route:
        """ISO code, type, colour and size read off the container.

        Anything not given falls back to what the container photo detected,
        and a known ISO code supplies the type and size.
        """
        self._require(Step.CONTAINER_DETAILS)
        for key, detected in (("isoCode", "isoCode"), ("containerColor", "containerColor"), ("containerColorCode", "colorHex")):
            if self.container_data.get(detected):
                details.setdefault(key, self.container_data[detected])
        known = lookup_iso_code(details.get("isoCode"))
        if known:
            details.setdefault("containerType", known.container_type)
            details.setdefault("containerSize", known.size)

        self.client.update_container_info(self.container_data["containerNumber"], **details)
        self.container_data.update(details)

        if load_status:
            self.client.update_load_status(self.trip_segment_number, load_status)
            self.container_data["containerLoadStatus"] = load_status
        return self._go(Route(self.navigator.next_main(self.step)))

    def _read_plate(self, image_bytes: bytes) -> str:
        try:
            return self.client.recognize_plate(image_bytes).get("licencePlate", "")
        except InspectionAPIError as exc:
            log.warning("Plate recognition failed, number left for manual entry: %s", exc.message)
            return ""

    def capture_trailer(self, image_bytes: bytes, trailer_number: Optional[str] = None) -> Route:
        self._require(Step.TRAILER_PHOTO)
        cropped = self._crop(image_bytes)
        number = trailer_number if trailer_number is not None else self._read_plate(cropped)

        body = self.client.upload_photo("trailer", self.trip_segment_number, cropped)
        self.client.update_trailer_details(self.trip_segment_number, number, body["url"])
        self.container_data.update({"trailerPhoto": body["url"], "trailerNumber": number})
        return self._go(Route(self.navigator.next_main(self.step)))

    def capture_truck(self, image_bytes: bytes, truck_number: Optional[str] = None) -> Route:
        self._require(Step.TRUCK_PHOTO)
        cropped = self._crop(image_bytes)
        number = truck_number if truck_number is not None else self._read_plate(cropped)

        body = self.client.upload_photo("truck", self.trip_segment_number, cropped)
        self.client.update_truck_details(self.trip_segment_number, number, body["url"])
        self.container_data.update({"truckPhoto": body["url"], "truckNumber": number})
        return self._go(Route(self.navigator.next_main(self.step)))

    def save_remarks(self, remarks: str) -> Route:
        self._require(Step.INSPECTION_REMARKS)
        try:
            self.client.update_damage_remarks(self.trip_segment_number, remarks)
        except InspectionAPIError as exc:
            log.warning("Saving damage remarks failed, continuing: %s", exc.message)
        self.container_data["damageRemarks"] = remarks
        return self._go(Route(Step.DRIVER_DETAILS))

    def read_driver_licence(self, image_bytes: bytes) -> dict:
        """Driver fields read off a licence photo, keyed like ``container_data``."""
        self._require(Step.DRIVER_DETAILS)
        reading = self._try_read(
            self.client.extract_driver_details,
            self._crop(image_bytes, document=True),
            "Licence recognition",
        )
        return {key: reading[field] for key, field in LICENCE_FIELDS.items() if reading.get(field)}

    def submit_driver_details(
        self,
        image_bytes: Optional[bytes] = None,
        licence_image: Optional[bytes] = None,
        **details
    ) -> Route:
        """Last step; the backend closes the inspection when this succeeds.

        Fields typed by the inspector win over those read from ``licence_image``.
        """
        self._require(Step.DRIVER_DETAILS)
        if licence_image:
            for key, value in self.read_driver_licence(licence_image).items():
                details.setdefault(key, value)
        if image_bytes:
            body = self.client.upload_photo("driver", self.trip_segment_number, self._crop(image_bytes, document=True))
            details["driverPhoto"] = body["url"]

        self.client.update_driver_details(self.trip_segment_number, **details)
        self.container_data.update(details)
        return self._go(Route(Step.COMPLETE))

    def go_back(self) -> Route:
        locations = self._damage_locations() if self.container_data.get("tripSegmentNumber") else []
        return self._go(self.navigator.back_from(self.step, locations, self.route.damage_for))
