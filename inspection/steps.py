import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

log = logging.getLogger(__name__)


class Step(str, Enum):
    CONTAINER_PHOTO = "container_photo"
    CONTAINER_DETAILS = "container_details"
    TRAILER_PHOTO = "trailer_photo"
    RIGHT_WALL = "right_wall"
    BACK_WALL = "back_wall"
    TRUCK_PHOTO = "truck_photo"
    LEFT_WALL = "left_wall"
    INSIDE = "inside"
    INSPECTION_REMARKS = "inspection_remarks"
    DRIVER_DETAILS = "driver_details"
    COMPLETE = "complete"
    DAMAGE_PHOTOS = "damage_photos"


MAIN_SEQUENCE = [
    Step.CONTAINER_PHOTO,
    Step.CONTAINER_DETAILS,
    Step.TRAILER_PHOTO,
    Step.RIGHT_WALL,
    Step.BACK_WALL,
    Step.TRUCK_PHOTO,
    Step.LEFT_WALL,
    Step.INSIDE,
    Step.INSPECTION_REMARKS,
    Step.DRIVER_DETAILS,
    Step.COMPLETE,
]

# Steps that ask "any damage?" and the label the answer is stored under
DAMAGE_LOCATIONS = {
    Step.CONTAINER_PHOTO: "Front Wall",
    Step.RIGHT_WALL: "Right Wall",
    Step.BACK_WALL: "Back Wall",
    Step.LEFT_WALL: "Left Side",
    Step.INSIDE: "Container Inside",
}


@dataclass(frozen=True)
class Route:
    """Where the wizard goes next. ``damage_for`` names the side whose damage is being photographed."""
    step: Step
    damage_for: Optional[Step] = None


def damage_location(step: Step) -> str:
    try:
        return DAMAGE_LOCATIONS[step]
    except KeyError:
        raise ValueError(f"{step.value} has no damage location")


class StepNavigator:
    """Routing rules of the inspection wizard."""

    @staticmethod
    def next_main(step: Step) -> Step:
        if step is Step.COMPLETE:
            return Step.COMPLETE
        return MAIN_SEQUENCE[MAIN_SEQUENCE.index(step) + 1]

    @staticmethod
    def previous_main(step: Step) -> Optional[Step]:
        index = MAIN_SEQUENCE.index(step)
        return MAIN_SEQUENCE[index - 1] if index > 0 else None

    @staticmethod
    def already_damaged(step: Step, damage_locations: Iterable[str]) -> bool:
        """A side recorded as damaged earlier skips the prompt and goes straight to its photos."""
        return step in DAMAGE_LOCATIONS and DAMAGE_LOCATIONS[step] in set(damage_locations or [])

    @staticmethod
    def after_damage_answer(step: Step, is_damaged: bool, has_damages: Optional[str] = None) -> Route:
        damage_location(step)
        if is_damaged:
            return Route(Step.DAMAGE_PHOTOS, damage_for=step)
        if step is Step.INSIDE:
            return StepNavigator.after_inside(has_damages)
        return Route(StepNavigator.next_main(step))

    @staticmethod
    def after_damage_photos(step: Step) -> Route:
        damage_location(step)
        if step is Step.INSIDE:
            # Damage was just recorded, so the remarks screen is always due
            return StepNavigator.after_inside("Yes")
        return Route(StepNavigator.next_main(step))

    @staticmethod
    def after_inside(has_damages: Optional[str]) -> Route:
        """Remarks only when some side is damaged; an unknown status errs towards asking."""
        if has_damages == "No":
            return Route(Step.DRIVER_DETAILS)
        if has_damages != "Yes":
            log.info("Damage status unknown (%r), showing inspection remarks", has_damages)
        return Route(Step.INSPECTION_REMARKS)

    @staticmethod
    def back_from(
        step: Step,
        damage_locations: Iterable[str] = (),
        damage_for: Optional[Step] = None
    ) -> Route:
        """Previous screen, re-entering a side's damage photos when that side was damaged."""
        locations = set(damage_locations or [])

        if step is Step.DAMAGE_PHOTOS:
            if damage_for is None:
                raise ValueError("damage_for is required when leaving the damage photos")
            return Route(damage_for)

        previous = StepNavigator.previous_main(step)
        if previous is None:
            return Route(step)

        if previous is Step.INSPECTION_REMARKS and not locations:
            # Remarks were skipped on the way forward
            previous = Step.INSIDE

        if DAMAGE_LOCATIONS.get(previous) in locations:
            return Route(Step.DAMAGE_PHOTOS, damage_for=previous)
        return Route(previous)
