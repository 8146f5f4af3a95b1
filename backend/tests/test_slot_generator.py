import pytest

from app.scheduling.clock import format_minutes
from app.scheduling.slots import SlotGenerator, generate_slots, iter_candidate_slots


def test_nine_to_five_hourly_service_yields_fifteen_slots():
    slots = generate_slots(open_minute=540, close_minute=1020, duration=60, granularity=30)

    starts = [format_minutes(slot.start_minute) for slot in slots]
    assert len(slots) == 15
    assert starts[0] == "09:00"
    assert starts[-1] == "16:00"
    assert all(slot.end_minute <= 1020 for slot in slots)


@pytest.mark.parametrize(
    "open_minute, close_minute, duration, granularity",
    [
        (540, 1020, 60, 30),
        (540, 1020, 45, 15),
        (600, 690, 90, 30),
        (0, 1440, 25, 10),
        (480, 500, 30, 30),
    ],
)
def test_generated_slots_fit_window_and_duration(open_minute, close_minute, duration, granularity):
    slots = generate_slots(open_minute, close_minute, duration, granularity)

    for slot in slots:
        assert slot.end_minute - slot.start_minute == duration
        assert open_minute <= slot.start_minute
        assert slot.end_minute <= close_minute
        assert (slot.start_minute - open_minute) % granularity == 0
    assert [s.start_minute for s in slots] == sorted(s.start_minute for s in slots)


def test_service_longer_than_window_yields_nothing():
    assert generate_slots(open_minute=480, close_minute=500, duration=30) == []


def test_generator_is_restartable():
    generator = SlotGenerator(open_minute=540, close_minute=720, duration=60, granularity=60)

    first = list(generator)
    second = list(generator)

    assert first == second
    assert len(first) == 3


def test_iter_candidate_slots_is_lazy():
    iterator = iter_candidate_slots(open_minute=540, close_minute=1020, duration=30, granularity=30)

    assert next(iterator).start_minute == 540
    assert next(iterator).start_minute == 570


@pytest.mark.parametrize("duration, granularity", [(0, 30), (-15, 30), (30, 0)])
def test_invalid_generator_parameters_raise(duration, granularity):
    with pytest.raises(ValueError):
        SlotGenerator(open_minute=540, close_minute=1020, duration=duration, granularity=granularity)


def test_slot_to_dict_uses_hhmm_labels():
    slot = generate_slots(open_minute=540, close_minute=600, duration=60)[0]

    assert slot.to_dict() == {"start": "09:00", "end": "10:00"}
