"""
Weekly time grid: days, periods, breaks and the scheduling window.

The standard school day runs P1-P10 between 08:00 and 16:50 with an assembly
before P1 and three breaks in between. Evening periods P11-P13 may exist but
are never placed automatically.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional


class Weekday(str, Enum):
    MONDAY = 'MONDAY'
    TUESDAY = 'TUESDAY'
    WEDNESDAY = 'WEDNESDAY'
    THURSDAY = 'THURSDAY'
    FRIDAY = 'FRIDAY'
    SATURDAY = 'SATURDAY'
    SUNDAY = 'SUNDAY'


class Session(str, Enum):
    ASSEMBLY = 'ASSEMBLY'
    MORNING = 'MORNING'
    AFTERNOON = 'AFTERNOON'
    EVENING = 'EVENING'
    BREAK = 'BREAK'


SCHOOL_DAYS = [Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY]
SCHOOL_DAY_NAMES = [d.value for d in SCHOOL_DAYS]
FIRST_PERIOD = 1
LAST_PERIOD = 10

# (name, period, start, end, session, break_type); period 0 marks a break
DAY_LAYOUT = [
    ('School Assembly', 0, '07:45', '08:00', Session.ASSEMBLY, 'ASSEMBLY'),
    ('Period 1', 1, '08:00', '08:40', Session.MORNING, None),
    ('Period 2', 2, '08:40', '09:20', Session.MORNING, None),
    ('Period 3', 3, '09:20', '10:00', Session.MORNING, None),
    ('Morning Break', 0, '10:00', '10:20', Session.BREAK, 'MORNING'),
    ('Period 4', 4, '10:20', '11:00', Session.MORNING, None),
    ('Period 5', 5, '11:00', '11:40', Session.MORNING, None),
    ('Lunch Break', 0, '11:40', '13:10', Session.BREAK, 'LUNCH'),
    ('Period 6', 6, '13:10', '13:50', Session.AFTERNOON, None),
    ('Period 7', 7, '13:50', '14:30', Session.AFTERNOON, None),
    ('Period 8', 8, '14:30', '15:10', Session.AFTERNOON, None),
    ('Afternoon Break', 0, '15:10', '15:30', Session.BREAK, 'AFTERNOON'),
    ('Period 9', 9, '15:30', '16:10', Session.AFTERNOON, None),
    ('Period 10', 10, '16:10', '16:50', Session.AFTERNOON, None),
]

EVENING_LAYOUT = [
    ('Period 11', 11, '16:50', '17:30', Session.EVENING, None),
    ('Period 12', 12, '17:30', '18:10', Session.EVENING, None),
    ('Period 13', 13, '18:10', '18:50', Session.EVENING, None),
]


@dataclass
class TimeSlot:
    id: Optional[int]
    school_id: int
    day: str
    period: int
    start_time: str
    end_time: str
    session: str
    is_break: bool = False
    name: str = ''
    break_type: Optional[str] = None
    is_active: bool = True


def _day_name(day) -> str:
    return day.value if isinstance(day, Weekday) else str(day).upper()


def is_schedulable(day, period: int, is_break: bool = False) -> bool:
    """True only for Monday-Friday, periods 1-10, and non-break slots."""
    if is_break:
        return False
    if _day_name(day) not in SCHOOL_DAY_NAMES:
        return False
    return FIRST_PERIOD <= period <= LAST_PERIOD


def is_schedulable_slot(slot: TimeSlot) -> bool:
    return slot.is_active and is_schedulable(slot.day, slot.period, slot.is_break)


def valid_slots(slots: Iterable[TimeSlot]) -> List[TimeSlot]:
    return [s for s in slots if is_schedulable_slot(s)]


def day_index(day) -> int:
    return [d.value for d in Weekday].index(_day_name(day))


def slot_key(day, period: int):
    return (_day_name(day), period)


def default_time_slots(school_id: int, include_evening: bool = False) -> List[TimeSlot]:
    layout = DAY_LAYOUT + (EVENING_LAYOUT if include_evening else [])
    slots = []
    for day in SCHOOL_DAYS:
        for name, period, start, end, session, break_type in layout:
            slots.append(TimeSlot(
                id=None,
                school_id=school_id,
                day=day.value,
                period=period,
                start_time=start,
                end_time=end,
                session=session.value,
                is_break=break_type is not None,
                name=name,
                break_type=break_type,
            ))
    return slots
