from models import LessonBlock, LessonType, ModuleCategory, PreferredTime
from priority_sorter import scheduling_tier, sort_lessons_by_priority, teacher_scope_scores


def block(teacher_id=1, class_id=1, subject_id=None, module_id=None, category=None,
          lesson_type=LessonType.SECONDARY, subject_name='', total_lessons=1, priority=1, level='S1'):
    return LessonBlock(teacher_id=teacher_id, class_id=class_id, block_size=2, lesson_index=1,
                       total_lessons=total_lessons, lesson_type=lesson_type, priority=priority,
                       preferred_time=PreferredTime.ANY, periods_per_week=2, level=level,
                       subject_id=subject_id, module_id=module_id, category=category,
                       subject_name=subject_name)


def test_scope_score_counts_classes_courses_and_levels():
    lessons = [
        block(teacher_id=1, class_id=1, subject_id=1, level='S1'),
        block(teacher_id=1, class_id=2, subject_id=1, level='S2'),
        block(teacher_id=1, class_id=2, subject_id=2, level='S2'),
        block(teacher_id=2, class_id=3, subject_id=3, level='S1'),
    ]
    assert teacher_scope_scores(lessons) == {1: 2 * 3 + 2 * 2 + 2, 2: 3 + 2 + 1}


def test_broad_teacher_goes_first():
    narrow = block(teacher_id=2, class_id=3, subject_id=9, subject_name='Mathematics')
    broad = [block(teacher_id=1, class_id=c, subject_id=1, subject_name='History') for c in (1, 2)]
    ordered = sort_lessons_by_priority([narrow] + broad)
    assert [l.teacher_id for l in ordered] == [1, 1, 2]


def test_tiers_for_one_teacher():
    complementary = block(module_id=5, category=ModuleCategory.COMPLEMENTARY, lesson_type=LessonType.TSS)
    history = block(subject_id=4, subject_name='History')
    physics = block(subject_id=3, subject_name='Applied Physics')
    general = block(module_id=2, category=ModuleCategory.GENERAL, lesson_type=LessonType.TSS)
    specific = block(module_id=1, category=ModuleCategory.SPECIFIC, lesson_type=LessonType.TSS)

    ordered = sort_lessons_by_priority([complementary, history, physics, general, specific])
    assert ordered == [specific, general, physics, history, complementary]
    assert [scheduling_tier(l) for l in ordered] == [1, 2, 3, 4, 5]


def test_subject_in_tss_class_comes_last():
    tss_subject = block(subject_id=1, subject_name='Mathematics', lesson_type=LessonType.TSS)
    assert scheduling_tier(tss_subject) == 6
    complementary = block(module_id=5, category=ModuleCategory.COMPLEMENTARY, lesson_type=LessonType.TSS)
    assert sort_lessons_by_priority([tss_subject, complementary]) == [complementary, tss_subject]


def test_secondary_before_primary_within_a_tier():
    primary = block(subject_id=1, subject_name='History', lesson_type=LessonType.PRIMARY)
    secondary = block(subject_id=1, subject_name='History', lesson_type=LessonType.SECONDARY)
    assert sort_lessons_by_priority([primary, secondary]) == [secondary, primary]


def test_more_blocks_first_on_ties():
    short = block(subject_id=1, subject_name='History', total_lessons=1)
    long = block(subject_id=1, subject_name='History', total_lessons=3)
    assert sort_lessons_by_priority([short, long]) == [long, short]


def test_sort_is_stable_and_repeatable():
    lessons = [block(teacher_id=t, class_id=c, subject_id=s, subject_name=n)
               for t, c, s, n in [(1, 1, 1, 'History'), (2, 1, 2, 'Mathematics'),
                                  (1, 2, 1, 'History'), (3, 3, 3, 'Art')]]
    assert sort_lessons_by_priority(lessons) == sort_lessons_by_priority(list(lessons))
