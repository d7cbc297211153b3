"""
Turns per-class teacher/subject and trainer/module assignments into lesson blocks.

Regular subjects and SPECIFIC/GENERAL modules follow the double-period rule:
the weekly load is split into blocks of two consecutive periods and the last
block takes the remainder. COMPLEMENTARY modules become single-period blocks
so they can fill whatever gaps are left.
"""
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from models import (
    LessonBlock, LessonType, ModuleCategory, PreferredTime,
    TeacherSubjectAssignment, TrainerModuleAssignment,
)

logger = logging.getLogger(__name__)

DOUBLE_PERIOD = 2
TSS_LEVELS = ('L3', 'L4', 'L5')
CATEGORY_PRIORITY = {
    ModuleCategory.SPECIFIC: 1,
    ModuleCategory.GENERAL: 2,
    ModuleCategory.COMPLEMENTARY: 3,
}
UNKNOWN_CATEGORY_PRIORITY = 4
MIN_LESSONS_PER_CLASS = 5


def get_module_category_priority(category) -> int:
    return CATEGORY_PRIORITY.get(ModuleCategory.parse(category), UNKNOWN_CATEGORY_PRIORITY)


def determine_lesson_type(level: str) -> LessonType:
    level = (level or '').strip().upper()
    if level in TSS_LEVELS:
        return LessonType.TSS
    if level.startswith('S'):
        return LessonType.SECONDARY
    if level.startswith('P'):
        return LessonType.PRIMARY
    return LessonType.SECONDARY


def split_into_blocks(periods: int, block_size: int = DOUBLE_PERIOD) -> List[int]:
    """[2, 2, ..., remainder]; empty for a non-positive load."""
    sizes = []
    remaining = periods
    while remaining > 0:
        sizes.append(min(block_size, remaining))
        remaining -= block_size
    return sizes


def _subject_blocks(assignment: TeacherSubjectAssignment) -> List[LessonBlock]:
    lesson_type = determine_lesson_type(assignment.class_level)
    level = assignment.class_level or assignment.subject_level or 'Unknown'
    sizes = split_into_blocks(assignment.periods_per_week)
    return [LessonBlock(
        teacher_id=assignment.teacher_id,
        class_id=assignment.class_id,
        subject_id=assignment.subject_id,
        block_size=size,
        lesson_index=index + 1,
        total_lessons=len(sizes),
        lesson_type=lesson_type,
        priority=assignment.periods_per_week,
        preferred_time=PreferredTime.ANY,
        periods_per_week=assignment.periods_per_week,
        level=level,
        teacher_name=assignment.teacher_name,
        subject_name=assignment.subject_name,
        class_name=assignment.class_name,
    ) for index, size in enumerate(sizes)]


def _module_blocks(assignment: TrainerModuleAssignment) -> List[LessonBlock]:
    category = assignment.category
    if category is ModuleCategory.COMPLEMENTARY:
        sizes = [1] * max(assignment.total_hours, 0)
        preferred_time = PreferredTime.ANY
    elif category in (ModuleCategory.SPECIFIC, ModuleCategory.GENERAL):
        sizes = split_into_blocks(assignment.total_hours)
        preferred_time = PreferredTime.MORNING
    else:
        sizes = split_into_blocks(assignment.total_hours)
        preferred_time = PreferredTime.ANY

    level = assignment.class_level or assignment.module_level or 'Unknown'
    priority = get_module_category_priority(category)
    return [LessonBlock(
        teacher_id=assignment.trainer_id,
        class_id=assignment.class_id,
        module_id=assignment.module_id,
        block_size=size,
        lesson_index=index + 1,
        total_lessons=len(sizes),
        lesson_type=LessonType.TSS,
        priority=priority,
        preferred_time=preferred_time,
        periods_per_week=assignment.total_hours,
        level=level,
        category=category,
        teacher_name=assignment.trainer_name,
        module_name=assignment.module_name,
        class_name=assignment.class_name,
    ) for index, size in enumerate(sizes)]


def prepare_lessons(subject_assignments: Iterable[TeacherSubjectAssignment],
                    module_assignments: Iterable[TrainerModuleAssignment]) -> List[LessonBlock]:
    lessons = []
    for assignment in subject_assignments:
        lessons.extend(_subject_blocks(assignment))
    for assignment in module_assignments:
        lessons.extend(_module_blocks(assignment))
    logger.info('Prepared %d lesson blocks', len(lessons))
    return lessons


def prepare_lessons_for_school(loader) -> List[LessonBlock]:
    return prepare_lessons(loader.load_teacher_subject_assignments(),
                           loader.load_trainer_module_assignments())


# --- REPORTING ---
def lesson_statistics(lessons: List[LessonBlock]) -> Dict:
    by_type = {t.value: 0 for t in LessonType}
    by_level = Counter()
    by_teacher = Counter()
    for lesson in lessons:
        by_type[lesson.lesson_type.value] += 1
        by_level[lesson.level] += 1
        by_teacher[lesson.teacher_name or lesson.teacher_id] += 1

    counts = list(by_teacher.values())
    return {
        'total': len(lessons),
        'byType': by_type,
        'byLevel': dict(by_level),
        'byTeacher': dict(by_teacher),
        'averageLessonsPerTeacher': sum(counts) / len(counts) if counts else 0,
        'maxLessonsPerTeacher': max(counts) if counts else 0,
    }


@dataclass
class LessonValidation:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_lessons(lessons: List[LessonBlock], teacher_ids: Iterable, class_ids: Iterable,
                     class_names: Optional[Dict] = None) -> LessonValidation:
    validation = LessonValidation()
    class_names = class_names or {}

    if not lessons:
        validation.errors.append('No lessons found. Please create teacher-class assignments first.')

    teachers_with_lessons = {l.teacher_id for l in lessons}
    unassigned = [t for t in teacher_ids if t not in teachers_with_lessons]
    if unassigned:
        validation.warnings.append(f'{len(unassigned)} teachers/trainers have no per-class lesson assignments')

    per_class = defaultdict(int)
    for lesson in lessons:
        per_class[lesson.class_id] += 1

    without_lessons = [c for c in class_ids if c not in per_class]
    if without_lessons:
        validation.warnings.append(
            f'{len(without_lessons)} classes have no lessons scheduled - they may need teacher assignments')

    low = [f'{class_names.get(c, c)} ({n} lessons)' for c, n in per_class.items() if n < MIN_LESSONS_PER_CLASS]
    if low:
        validation.warnings.append(f"Some classes have very few lessons: {', '.join(low)}")

    return validation
