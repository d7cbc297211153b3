"""
Placement order for lesson blocks.

Broadly committed teachers go first, then core TSS modules, Mathematics and
Physics, other subjects, and finally COMPLEMENTARY modules as filler.
"""
import logging
from collections import defaultdict
from typing import Dict, List

from models import LessonBlock, LessonType, ModuleCategory

logger = logging.getLogger(__name__)

PRIORITY_SUBJECT_KEYWORDS = ('mathematics', 'physics')
LESSON_TYPE_RANK = {LessonType.TSS: 3, LessonType.SECONDARY: 2, LessonType.PRIMARY: 1}


def teacher_scope_scores(lessons: List[LessonBlock]) -> Dict[int, int]:
    """classes * 3 + subjects/modules * 2 + levels, per teacher."""
    classes = defaultdict(set)
    courses = defaultdict(set)
    levels = defaultdict(set)
    for lesson in lessons:
        classes[lesson.teacher_id].add(lesson.class_id)
        courses[lesson.teacher_id].add(lesson.course_key[2:])
        levels[lesson.teacher_id].add(lesson.level)

    scores = {}
    for teacher_id in classes:
        scores[teacher_id] = len(classes[teacher_id]) * 3 + len(courses[teacher_id]) * 2 + len(levels[teacher_id])
        logger.debug('Teacher %s scope: %d classes, %d subjects/modules, %d levels = score %d',
                     teacher_id, len(classes[teacher_id]), len(courses[teacher_id]),
                     len(levels[teacher_id]), scores[teacher_id])
    return scores


def is_priority_subject(lesson: LessonBlock) -> bool:
    name = (lesson.subject_name or '').lower()
    return any(keyword in name for keyword in PRIORITY_SUBJECT_KEYWORDS)


def scheduling_tier(lesson: LessonBlock) -> int:
    if lesson.lesson_type is LessonType.TSS:
        if lesson.category is ModuleCategory.SPECIFIC:
            return 1
        if lesson.category is ModuleCategory.GENERAL:
            return 2
        if lesson.category is ModuleCategory.COMPLEMENTARY:
            return 5
        return 6
    if is_priority_subject(lesson):
        return 3
    return 4


def sort_lessons_by_priority(lessons: List[LessonBlock]) -> List[LessonBlock]:
    scores = teacher_scope_scores(lessons)

    def key(lesson):
        is_tss = lesson.lesson_type is LessonType.TSS
        return (
            -scores.get(lesson.teacher_id, 0),
            scheduling_tier(lesson),
            -LESSON_TYPE_RANK[lesson.lesson_type],
            lesson.priority if is_tss else 0,
            -lesson.total_lessons,
        )

    return sorted(lessons, key=key)
