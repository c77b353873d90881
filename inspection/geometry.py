import math
from dataclasses import dataclass

WALL_GUIDE_WIDTH_RATIO = 0.85
WALL_GUIDE_ASPECT = 0.94
WALL_GUIDE_LIFT = 80
DOCUMENT_GUIDE_WIDTH_RATIO = 0.80
DOCUMENT_GUIDE_HEIGHT_RATIO = 0.70
DOCUMENT_GUIDE_TOP = 80


@dataclass(frozen=True)
class GuideFrame:
    """Overlay rectangle drawn over the camera preview, in screen points."""
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CropBox:
    x: int
    y: int
    width: int
    height: int

    def is_within(self, image_width: int, image_height: int) -> bool:
        if self.x < 0 or self.y < 0 or self.width <= 0 or self.height <= 0:
            return False
        return self.x + self.width <= image_width and self.y + self.height <= image_height

    def as_pillow_box(self) -> tuple:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def round_half_up(value: float) -> int:
    """Half-up rounding: 2.5 -> 3, unlike ``round(2.5) == 2``."""
    return math.floor(value + 0.5)


def wall_guide(screen_width: float, screen_height: float) -> GuideFrame:
    """Square-ish frame for container walls, centred and raised above the shutter."""
    width = screen_width * WALL_GUIDE_WIDTH_RATIO
    height = width * WALL_GUIDE_ASPECT
    return GuideFrame(
        x=(screen_width - width) / 2,
        y=(screen_height - height) / 2 - WALL_GUIDE_LIFT,
        width=width,
        height=height,
    )


def document_guide(screen_width: float, screen_height: float) -> GuideFrame:
    """Tall frame for paperwork such as the depot allocation slip."""
    width = screen_width * DOCUMENT_GUIDE_WIDTH_RATIO
    height = screen_height * DOCUMENT_GUIDE_HEIGHT_RATIO
    return GuideFrame(
        x=(screen_width - width) / 2,
        y=DOCUMENT_GUIDE_TOP,
        width=width,
        height=height,
    )


def calculate_crop_area(
    image_width: int,
    image_height: int,
    screen_width: float,
    screen_height: float,
    guide: GuideFrame
) -> CropBox:
    """
    Map the on-screen guide onto the captured image.

    The preview fills the screen ("cover"), so the image is scaled until the
    shorter side fits and the overflow is cropped equally on both sides.
    """
    image_aspect = image_width / image_height
    screen_aspect = screen_width / screen_height

    if image_aspect > screen_aspect:
        display_height = screen_height
        display_width = screen_height * image_aspect
        offset_x = (display_width - screen_width) / 2
        offset_y = 0.0
    else:
        display_width = screen_width
        display_height = screen_width / image_aspect
        offset_x = 0.0
        offset_y = (display_height - screen_height) / 2

    scale = image_width / display_width

    x = max(0.0, (guide.x + offset_x) * scale)
    y = max(0.0, (guide.y + offset_y) * scale)
    width = guide.width * scale
    height = guide.height * scale

    if x + width > image_width:
        width = image_width - x
    if y + height > image_height:
        height = image_height - y

    left, top = round_half_up(x), round_half_up(y)
    # Rounding both origin and extent up can overshoot by a pixel
    return CropBox(
        x=left,
        y=top,
        width=min(round_half_up(width), image_width - left),
        height=min(round_half_up(height), image_height - top),
    )
