from datetime import datetime

import pytest

from time_slots import time_slot_for, time_slot_for_hour


@pytest.mark.parametrize("hour, slot", [
    (0, "evening"),
    (4, "evening"),
    (5, "morning"),
    (10, "morning"),
    (11, "noon"),
    (13, "noon"),
    (14, "afternoon"),
    (17, "afternoon"),
    (18, "evening"),
    (23, "evening"),
])
def test_slot_boundaries(hour, slot):
    assert time_slot_for_hour(hour) == slot


def test_slot_uses_wall_clock_hour():
    assert time_slot_for(datetime(2030, 1, 1, 10, 59)) == "morning"
    assert time_slot_for(datetime(2030, 1, 1, 11, 0)) == "noon"
