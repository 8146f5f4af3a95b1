from app.scheduling.conflicts import ConflictScope, check_conflict, intervals_overlap
from app.scheduling.slots import Slot, SlotGenerator, generate_slots
from app.scheduling.working_hours import WorkingHours, parse_working_hours, resolve_day

__all__ = [
    "ConflictScope",
    "check_conflict",
    "intervals_overlap",
    "Slot",
    "SlotGenerator",
    "generate_slots",
    "WorkingHours",
    "parse_working_hours",
    "resolve_day",
]
