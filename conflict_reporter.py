"""
Builds the human-readable conflicts returned by a generation run.
"""
from collections import defaultdict
from typing import Iterable, List, Optional

from models import Conflict, LessonBlock, ModuleCategory, NameLookup


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


class ConflictReporter:
    def __init__(self, lookup: Optional[NameLookup] = None, lessons: Iterable[LessonBlock] = ()):
        self.lookup = lookup or NameLookup()
        self.conflicts: List[Conflict] = []
        self._classes = defaultdict(set)
        self._courses = defaultdict(set)
        for lesson in lessons:
            self._classes[lesson.teacher_id].add(lesson.class_id)
            self._courses[lesson.teacher_id].add(lesson.course_key[2:])

    def add(self, conflict: Conflict) -> Conflict:
        self.conflicts.append(conflict)
        return conflict

    # --- names ---
    def teacher_name(self, lesson: LessonBlock) -> str:
        return lesson.teacher_name or self.lookup.teacher(lesson.teacher_id)

    def class_name(self, lesson: LessonBlock) -> str:
        return lesson.class_name or self.lookup.school_class(lesson.class_id)

    def course_name(self, lesson: LessonBlock) -> str:
        if lesson.is_module:
            return lesson.module_name or self.lookup.module(lesson.module_id)
        return lesson.subject_name or self.lookup.subject(lesson.subject_id)

    # --- conflicts ---
    def unassigned(self, lesson: LessonBlock) -> Conflict:
        teacher = self.teacher_name(lesson)
        school_class = self.class_name(lesson)
        course = self.course_name(lesson)
        size = lesson.block_size

        n_classes = len(self._classes.get(lesson.teacher_id, ()))
        n_courses = len(self._courses.get(lesson.teacher_id, ()))
        details = []
        if n_classes > 1:
            details.append(f'{n_classes} classes')
        if n_courses > 1:
            details.append(f'{n_courses} subjects/modules')
        scope_detail = f" - Teacher scope: {', '.join(details)}" if details else ''
        redistribute = (f'Teacher teaches across {n_classes} classes and {n_courses} subjects/modules'
                        ' - consider workload redistribution') if details else None

        category = lesson.category
        if category in (ModuleCategory.SPECIFIC, ModuleCategory.GENERAL):
            odd_remainder = (lesson.periods_per_week % 2 == 1 and size == 1
                             and lesson.lesson_index == lesson.total_lessons)
            message = (f'Could not schedule {course} (requires {_plural(size, "consecutive period")}'
                       f' - {category.value} module) for {teacher} in {school_class}{scope_detail}')
            suggestions = [
                'SPECIFIC and GENERAL modules are scheduled as 2 consecutive periods',
                'Add more consecutive free slots in the P1-P10 range',
                'Ensure no breaks interrupt the required consecutive periods',
                'Check teacher availability constraints (unavailable days and periods)',
                'Reduce teacher workload to free up consecutive periods',
            ]
            if odd_remainder:
                suggestions.append('This is the single remaining period of an odd weekly load; any free period will do')
        elif category is ModuleCategory.COMPLEMENTARY:
            message = (f'Could not schedule {course} (COMPLEMENTARY module fills remaining free spaces;'
                       f' tried 1 period, then 2) for {teacher} in {school_class}{scope_detail}')
            suggestions = [
                'COMPLEMENTARY modules fill remaining free spaces and prefer single periods',
                'Add more free time slots anywhere in P1-P10',
                'Reduce teacher workload to create more free slots',
                'Check teacher availability constraints (unavailable days and periods)',
            ]
        else:
            message = (f'Could not schedule {course} block ({_plural(size, "consecutive period")} required)'
                       f' for {teacher} in {school_class}{scope_detail}')
            suggestions = [
                'Add more consecutive time slots to the schedule',
                'Ensure no breaks interrupt the required consecutive periods',
                'Reduce teacher workload or redistribute assignments',
                'Check teacher availability constraints across all classes',
                'Consider manual scheduling for this specific lesson',
            ]
        if redistribute:
            suggestions.append(redistribute)
        return self.add(Conflict(message=message, suggestions=suggestions))

    def capacity(self, required: int, available: int, scope_label: str = '') -> Conflict:
        suffix = f' for {scope_label}' if scope_label else ''
        return self.add(Conflict(
            message=(f'Not enough time slots available{suffix}. Required: {required} periods, '
                     f'Available: {available} slots.'),
            suggestions=[
                'Add more time slots (P1-P10, Monday to Friday) to the school timetable',
                f'Reduce lesson assignments{suffix}',
            ],
        ))

    def no_lessons(self, scope_label: str = '') -> Conflict:
        if scope_label:
            message = f'No lessons found for the selected {scope_label}'
        else:
            message = 'No lessons to schedule'
        return self.add(Conflict(
            message=message,
            suggestions=['Create teacher-class-subject or trainer-class-module assignments first'],
        ))

    def internal_error(self, scope_label: str = '') -> Conflict:
        suffix = f' for {scope_label}' if scope_label else ''
        return self.add(Conflict(message=f'Timetable generation{suffix} failed due to an internal error'))
