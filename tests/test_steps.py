import pytest

from inspection.steps import DAMAGE_LOCATIONS, MAIN_SEQUENCE, Route, Step, StepNavigator

SIDE_STEPS = [Step.CONTAINER_PHOTO, Step.RIGHT_WALL, Step.BACK_WALL, Step.LEFT_WALL]


def test_damage_locations_match_backend_labels():
    assert DAMAGE_LOCATIONS == {
        Step.CONTAINER_PHOTO: "Front Wall",
        Step.RIGHT_WALL: "Right Wall",
        Step.BACK_WALL: "Back Wall",
        Step.LEFT_WALL: "Left Side",
        Step.INSIDE: "Container Inside",
    }


@pytest.mark.parametrize("step", SIDE_STEPS)
def test_yes_opens_damage_photos_for_that_side(step):
    assert StepNavigator.after_damage_answer(step, True) == Route(Step.DAMAGE_PHOTOS, damage_for=step)


@pytest.mark.parametrize("step", SIDE_STEPS)
def test_no_and_damage_photos_both_continue_the_sequence(step):
    following = MAIN_SEQUENCE[MAIN_SEQUENCE.index(step) + 1]
    assert StepNavigator.after_damage_answer(step, False) == Route(following)
    assert StepNavigator.after_damage_photos(step) == Route(following)


def test_main_sequence_order():
    assert StepNavigator.next_main(Step.TRAILER_PHOTO) is Step.RIGHT_WALL
    assert StepNavigator.next_main(Step.BACK_WALL) is Step.TRUCK_PHOTO
    assert StepNavigator.next_main(Step.TRUCK_PHOTO) is Step.LEFT_WALL
    assert StepNavigator.next_main(Step.COMPLETE) is Step.COMPLETE


@pytest.mark.parametrize(
    "has_damages,expected",
    [
        ("Yes", Step.INSPECTION_REMARKS),
        ("No", Step.DRIVER_DETAILS),
        (None, Step.INSPECTION_REMARKS),
    ],
)
def test_after_inside_depends_on_overall_status(has_damages, expected):
    assert StepNavigator.after_inside(has_damages) == Route(expected)


def test_inside_answers():
    assert StepNavigator.after_damage_answer(Step.INSIDE, False, "No") == Route(Step.DRIVER_DETAILS)
    assert StepNavigator.after_damage_answer(Step.INSIDE, False, "Yes") == Route(Step.INSPECTION_REMARKS)
    assert StepNavigator.after_damage_photos(Step.INSIDE) == Route(Step.INSPECTION_REMARKS)


def test_steps_without_damage_prompt_are_rejected():
    with pytest.raises(ValueError):
        StepNavigator.after_damage_answer(Step.TRUCK_PHOTO, True)


def test_back_goes_to_previous_step_when_undamaged():
    assert StepNavigator.back_from(Step.BACK_WALL, []) == Route(Step.RIGHT_WALL)
    assert StepNavigator.back_from(Step.TRUCK_PHOTO, ["Right Wall"]) == Route(Step.BACK_WALL)


def test_back_reenters_damage_photos_of_damaged_side():
    assert StepNavigator.back_from(Step.BACK_WALL, ["Right Wall"]) == Route(Step.DAMAGE_PHOTOS, damage_for=Step.RIGHT_WALL)
    assert StepNavigator.back_from(Step.INSPECTION_REMARKS, ["Container Inside"]) == Route(
        Step.DAMAGE_PHOTOS, damage_for=Step.INSIDE
    )


def test_back_from_damage_photos_returns_to_side():
    assert StepNavigator.back_from(Step.DAMAGE_PHOTOS, ["Left Side"], damage_for=Step.LEFT_WALL) == Route(Step.LEFT_WALL)
    with pytest.raises(ValueError):
        StepNavigator.back_from(Step.DAMAGE_PHOTOS, [])


def test_back_from_driver_details_skips_remarks_without_damage():
    assert StepNavigator.back_from(Step.DRIVER_DETAILS, []) == Route(Step.INSIDE)
    assert StepNavigator.back_from(Step.DRIVER_DETAILS, ["Back Wall"]) == Route(Step.INSPECTION_REMARKS)


def test_back_from_first_step_stays_put():
    assert StepNavigator.back_from(Step.CONTAINER_PHOTO, []) == Route(Step.CONTAINER_PHOTO)


def test_known_damage_skips_prompt():
    assert StepNavigator.already_damaged(Step.BACK_WALL, ["Back Wall"]) is True
    assert StepNavigator.already_damaged(Step.BACK_WALL, ["Right Wall"]) is False
    assert StepNavigator.already_damaged(Step.TRUCK_PHOTO, ["Back Wall"]) is False
