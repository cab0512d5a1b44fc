from datetime import datetime

TIME_SLOTS = ("morning", "noon", "afternoon", "evening")


def time_slot_for_hour(hour: int) -> str:
    """
    Map an hour of the day to its timeline bucket.

    [5, 11) morning, [11, 14) noon, [14, 18) afternoon, anything else evening.
    """
    if 5 <= hour < 11:
        return "morning"
    if 11 <= hour < 14:
        return "noon"
    if 14 <= hour < 18:
        return "afternoon"
    return "evening"


def time_slot_for(start: datetime) -> str:
    return time_slot_for_hour(start.hour)
