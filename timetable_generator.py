"""
Timetable generation entry points: whole school, one class, or one teacher.

Each call runs load -> prepare -> sort -> allocate -> persist to completion
with its own SchedulerState. Two calls for the same school must not overlap;
callers are expected to serialize them.
"""
import logging
from collections import Counter
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from assignment_loader import AssignmentLoader
from conflict_reporter import ConflictReporter
from database import SchoolRepository
from lesson_preparation import lesson_statistics, prepare_lessons_for_school, validate_lessons
from models import GenerationResult, LessonBlock, ScheduledLesson
from priority_sorter import sort_lessons_by_priority
from slot_allocator import GreedySlotAllocator, LessonAllocator, SchedulerState

logger = logging.getLogger(__name__)


def outstanding_lessons(lessons: Iterable[LessonBlock], existing: Iterable[ScheduledLesson]) -> List[LessonBlock]:
    """Drop the periods each assignment already has in the timetable."""
    covered = Counter(lesson.course_key for lesson in existing)
    remaining = []
    for block in sorted(lessons, key=lambda b: (b.course_key, b.lesson_index)):
        done = covered[block.course_key]
        if done >= block.block_size:
            covered[block.course_key] -= block.block_size
            continue
        if done > 0:
            covered[block.course_key] = 0
            block = replace(block, block_size=block.block_size - done)
        remaining.append(block)
    return remaining


class TimetableGenerator:
    def __init__(self, repository: SchoolRepository, school_id,
                 allocator_factory: Optional[Callable[..., LessonAllocator]] = None):
        self.repository = repository
        self.school_id = school_id
        self.allocator_factory = allocator_factory or GreedySlotAllocator

    def generate(self) -> GenerationResult:
        return self._run(lambda lesson: True)

    def generate_for_class(self, class_id, incremental=False, regenerate=False) -> GenerationResult:
        return self._run(lambda lesson: lesson.class_id == class_id,
                         class_id=class_id, incremental=incremental, regenerate=regenerate)

    def generate_for_teacher(self, teacher_id, incremental=False, regenerate=False) -> GenerationResult:
        return self._run(lambda lesson: lesson.teacher_id == teacher_id,
                         teacher_id=teacher_id, incremental=incremental, regenerate=regenerate)

    def _run(self, in_scope, class_id=None, teacher_id=None, incremental=False, regenerate=False):
        if class_id is not None:
            scope_kind = 'class'
        elif teacher_id is not None:
            scope_kind = 'teacher'
        else:
            scope_kind = ''
        keep_existing = bool(scope_kind) and incremental and not regenerate
        reporter = ConflictReporter()

        try:
            loader = AssignmentLoader(self.repository, self.school_id)
            loader.ensure_school()
            lookup = loader.load_name_lookup()
            all_lessons = prepare_lessons_for_school(loader)
            reporter = ConflictReporter(lookup, all_lessons)

            validation = validate_lessons(all_lessons, lookup.teachers, lookup.classes, lookup.classes)
            for warning in validation.warnings:
                logger.warning('School %s: %s', self.school_id, warning)
            logger.info('School %s lesson statistics: %s', self.school_id, lesson_statistics(all_lessons))

            lessons = [lesson for lesson in all_lessons if in_scope(lesson)]
            if not lessons:
                reporter.no_lessons(scope_kind)
                return GenerationResult(success=False, conflicts=reporter.conflicts)

            state = SchedulerState(loader.load_time_slots())
            if scope_kind:
                state.seed(self.repository.list_timetables(
                    self.school_id, exclude_class_id=class_id, exclude_teacher_id=teacher_id))
            if keep_existing:
                existing = self.repository.list_timetables(self.school_id, class_id=class_id, teacher_id=teacher_id)
                state.seed(existing)
                lessons = outstanding_lessons(lessons, existing)

            required = sum(lesson.block_size for lesson in lessons)
            available = len(state.schedulable_slots())
            if required > available:
                if class_id is not None:
                    label = f'class {lookup.school_class(class_id)}'
                elif teacher_id is not None:
                    label = f'teacher {lookup.teacher(teacher_id)}'
                else:
                    label = ''
                reporter.capacity(required, available, label)
                logger.warning('School %s: %d periods required but only %d slots available',
                               self.school_id, required, available)
                return GenerationResult(success=False, conflicts=reporter.conflicts)

            allocator = self.allocator_factory(loader.load_teacher_constraints())
            allocator.allocate(sort_lessons_by_priority(lessons), state, reporter)

            self.repository.replace_timetables(self.school_id, state.scheduled, class_id=class_id,
                                               teacher_id=teacher_id, delete_existing=not keep_existing)
            logger.info('School %s: scheduled %d periods with %d conflicts',
                        self.school_id, len(state.scheduled), len(reporter.conflicts))
            return GenerationResult(success=True, conflicts=reporter.conflicts,
                                    lessons_scheduled=len(state.scheduled))
        except Exception:
            logger.exception('Timetable generation failed for school %s', self.school_id)
            reporter.internal_error(scope_kind)
            return GenerationResult(success=False, conflicts=reporter.conflicts)


def generate_timetable(repository, school_id) -> GenerationResult:
    return TimetableGenerator(repository, school_id).generate()


def generate_timetable_for_class(repository, school_id, class_id, incremental=False, regenerate=False):
    return TimetableGenerator(repository, school_id).generate_for_class(
        class_id, incremental=incremental, regenerate=regenerate)


def generate_timetable_for_teacher(repository, school_id, teacher_id, incremental=False, regenerate=False):
    return TimetableGenerator(repository, school_id).generate_for_teacher(
        teacher_id, incremental=incremental, regenerate=regenerate)
