"""
Greedy slot allocation for lesson blocks.

Each block is placed at the first candidate slot where the whole run of
periods is free for both teacher and class, stays inside P1-P10 without a
break, does not give the teacher more than two consecutive periods and does
not give the teacher more than three periods with one class on one day.
Blocks are visited once, in the order given; failures become conflicts.
"""
import logging
from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from conflict_reporter import ConflictReporter
from models import LessonBlock, ModuleCategory, PreferredTime, ScheduledLesson, TeacherConstraints
from time_grid import LAST_PERIOD, FIRST_PERIOD, Session, TimeSlot, is_schedulable, is_schedulable_slot

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_PERIODS = 2
MAX_PERIODS_PER_CLASS_PER_DAY = 3


class SchedulerState:
    """Occupancy for one generation run."""

    def __init__(self, time_slots: Iterable[TimeSlot]):
        self.time_slots: List[TimeSlot] = [s for s in time_slots if s.is_active]
        self._slots_by_key: Dict[tuple, TimeSlot] = {}
        for slot in self.time_slots:
            if not slot.is_break:
                self._slots_by_key.setdefault((slot.day, slot.period), slot)

        self.teacher_occupied = defaultdict(set)
        self.class_occupied = defaultdict(set)
        self.teacher_class_day = Counter()
        # periods placed during this run only, used to spread lessons over the week
        self.run_teacher_day = Counter()
        self.run_class_day = Counter()
        self.scheduled: List[ScheduledLesson] = []

    def seed(self, lessons: Iterable[ScheduledLesson]):
        count = 0
        for lesson in lessons:
            self._mark(lesson)
            count += 1
        logger.info('Seeded occupancy from %d existing timetable entries', count)

    def _mark(self, lesson: ScheduledLesson):
        key = (lesson.day, lesson.period)
        self.teacher_occupied[lesson.teacher_id].add(key)
        self.class_occupied[lesson.class_id].add(key)
        self.teacher_class_day[(lesson.teacher_id, lesson.class_id, lesson.day)] += 1

    def commit(self, lesson: ScheduledLesson):
        self._mark(lesson)
        self.run_teacher_day[(lesson.teacher_id, lesson.day)] += 1
        self.run_class_day[(lesson.class_id, lesson.day)] += 1
        self.scheduled.append(lesson)

    def slot_at(self, day, period) -> Optional[TimeSlot]:
        return self._slots_by_key.get((day, period))

    def schedulable_slots(self) -> List[TimeSlot]:
        return [s for s in self.time_slots if is_schedulable_slot(s)]

    def teacher_free(self, teacher_id, day, period) -> bool:
        return (day, period) not in self.teacher_occupied[teacher_id]

    def class_free(self, class_id, day, period) -> bool:
        return (day, period) not in self.class_occupied[class_id]


class LessonAllocator(ABC):
    """Places sorted lesson blocks into a SchedulerState."""

    @abstractmethod
    def allocate(self, lessons: List[LessonBlock], state: SchedulerState, reporter: ConflictReporter):
        raise NotImplementedError


class GreedySlotAllocator(LessonAllocator):
    def __init__(self, constraints: Optional[Dict[int, TeacherConstraints]] = None,
                 max_consecutive: int = MAX_CONSECUTIVE_PERIODS,
                 max_periods_per_class_day: int = MAX_PERIODS_PER_CLASS_PER_DAY):
        self.constraints = constraints or {}
        self.max_consecutive = max_consecutive
        self.max_periods_per_class_day = max_periods_per_class_day

    def allocate(self, lessons, state, reporter):
        for lesson in lessons:
            pending = lesson
            while pending is not None:
                placed = self.schedule_lesson(pending, state)
                if placed == 0:
                    reporter.unassigned(pending)
                    logger.info('Failed to schedule block %s/%s of %s for teacher %s in class %s',
                                pending.lesson_index, pending.total_lessons, reporter.course_name(pending),
                                pending.teacher_id, pending.class_id)
                    pending = None
                elif placed < pending.block_size:
                    # a shortened placement leaves periods that are tried right away
                    pending = replace(pending, block_size=pending.block_size - placed)
                else:
                    pending = None
        return state.scheduled

    # --- candidates ---
    def candidate_slots(self, lesson: LessonBlock, state: SchedulerState) -> List[TimeSlot]:
        slots = state.schedulable_slots()
        if lesson.preferred_time is PreferredTime.MORNING:
            slots = ([s for s in slots if s.session == Session.MORNING.value] +
                     [s for s in slots if s.session != Session.MORNING.value])
        slots = [s for s in slots if is_schedulable(s.day, s.period, s.is_break)]

        def load(slot):
            return (state.run_teacher_day[(lesson.teacher_id, slot.day)] +
                    state.run_class_day[(lesson.class_id, slot.day)])

        return sorted(slots, key=lambda s: (load(s), s.day, s.period))

    @staticmethod
    def block_sizes_to_try(lesson: LessonBlock) -> List[int]:
        category = lesson.category
        if category is ModuleCategory.COMPLEMENTARY:
            return [1, 2] if lesson.block_size >= 2 else [1]
        if category in (ModuleCategory.SPECIFIC, ModuleCategory.GENERAL):
            return [lesson.block_size, 1] if lesson.block_size == 2 else [lesson.block_size]
        return [lesson.block_size]

    # --- constraints ---
    def teacher_available(self, teacher_id, day, period) -> bool:
        constraints = self.constraints.get(teacher_id)
        if constraints is None:
            return True
        return day not in constraints.unavailable_days and period not in constraints.unavailable_periods

    def can_schedule_block(self, state, teacher_id, class_id, day, start_period, size) -> bool:
        end_period = start_period + size - 1
        if start_period < FIRST_PERIOD or end_period > LAST_PERIOD:
            return False
        for period in range(start_period, end_period + 1):
            slot = state.slot_at(day, period)
            if slot is None or not is_schedulable(day, period, slot.is_break):
                return False
            if not self.teacher_available(teacher_id, day, period):
                return False
            if not state.teacher_free(teacher_id, day, period) or not state.class_free(class_id, day, period):
                return False
        return True

    def can_schedule_consecutive(self, state, teacher_id, day, start_period, size) -> bool:
        occupied = {p for d, p in state.teacher_occupied[teacher_id] if d == day}
        before = 0
        while start_period - 1 - before in occupied:
            before += 1
        after = 0
        while start_period + size + after in occupied:
            after += 1
        return before + size + after <= self.max_consecutive

    def is_workload_balanced(self, state, teacher_id, class_id, day, size) -> bool:
        return state.teacher_class_day[(teacher_id, class_id, day)] + size <= self.max_periods_per_class_day

    def fits(self, lesson, state, slot, size) -> bool:
        teacher_id, class_id, day = lesson.teacher_id, lesson.class_id, slot.day
        return (self.can_schedule_block(state, teacher_id, class_id, day, slot.period, size)
                and state.teacher_free(teacher_id, day, slot.period)
                and state.class_free(class_id, day, slot.period)
                and self.can_schedule_consecutive(state, teacher_id, day, slot.period, size)
                and self.is_workload_balanced(state, teacher_id, class_id, day, size))

    # --- placement ---
    def schedule_lesson(self, lesson: LessonBlock, state: SchedulerState) -> int:
        """Place the block at its first fitting slot; returns the periods placed (0 when none)."""
        for slot in self.candidate_slots(lesson, state):
            if not self.teacher_available(lesson.teacher_id, slot.day, slot.period):
                continue
            for size in self.block_sizes_to_try(lesson):
                if self.fits(lesson, state, slot, size):
                    self._commit(lesson, state, slot, size)
                    return size
        return 0

    def _commit(self, lesson, state, slot, size):
        for period in range(slot.period, slot.period + size):
            time_slot = state.slot_at(slot.day, period)
            state.commit(ScheduledLesson(
                teacher_id=lesson.teacher_id,
                class_id=lesson.class_id,
                subject_id=lesson.subject_id,
                module_id=lesson.module_id,
                day=slot.day,
                period=period,
                time_slot_id=time_slot.id,
            ))
        logger.debug('Scheduled %d period(s) for teacher %s class %s at %s P%d',
                     size, lesson.teacher_id, lesson.class_id, slot.day, slot.period)
