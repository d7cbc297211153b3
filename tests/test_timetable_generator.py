import sqlite3

import pytest

from assignment_loader import AssignmentLoader, SchoolNotFoundError
from lesson_preparation import prepare_lessons_for_school
from models import ScheduledLesson
from timetable_generator import (
    TimetableGenerator, generate_timetable, generate_timetable_for_class, generate_timetable_for_teacher,
    outstanding_lessons,
)

from conftest import assert_timetable_invariants


def placements(lessons):
    return sorted((l.teacher_id, l.class_id, l.subject_id or 0, l.module_id or 0, l.day, l.period)
                  for l in lessons)


@pytest.fixture
def small_school(school):
    school.time_slots(periods=range(1, 5))
    school.t1 = school.teacher('Alice')
    school.c1 = school.school_class('S1A')
    school.s1 = school.subject('History', 4)
    school.assign_subject(school.t1, school.c1, school.s1)
    return school


@pytest.fixture
def busy_school(school):
    school.default_time_slots()
    s1a = school.school_class('S1A', 'S1')
    s2a = school.school_class('S2A', 'S2')
    l4 = school.school_class('L4 SWD', 'L4')
    alice = school.teacher('Alice')
    bob = school.teacher('Bob')
    carol = school.teacher('Carol', unavailable_days=['FRIDAY'])
    dan = school.teacher('Dan', unavailable_periods=['P1', 'P2'])

    maths = school.subject('Mathematics', 5)
    physics = school.subject('Physics', 4)
    english = school.subject('English', 3)
    history = school.subject('History', 2)
    school.assign_subject(alice, s1a, maths)
    school.assign_subject(alice, s2a, maths)
    school.assign_subject(bob, s1a, physics)
    school.assign_subject(bob, s2a, english)
    school.assign_subject(dan, s1a, history)

    school.assign_module(carol, l4, school.module('Web Development', 6, 'SPECIFIC'))
    school.assign_module(carol, l4, school.module('Databases', 3, 'GENERAL'))
    school.assign_module(carol, l4, school.module('Entrepreneurship', 3, 'COMPLEMENTARY'))
    school.assign_module(dan, l4, school.module('Communication', 2, 'COMPLEMENTARY'))
    school.classes = (s1a, s2a, l4)
    school.teachers = (alice, bob, carol, dan)
    return school


def test_four_periods_become_two_double_periods(small_school):
    result = TimetableGenerator(small_school.repository, small_school.school_id).generate()

    assert result.success
    assert result.conflicts == []
    assert result.lessons_scheduled == 4
    lessons = small_school.timetable()
    assert [(l.day, l.period) for l in lessons] == [
        ('MONDAY', 1), ('MONDAY', 2), ('FRIDAY', 1), ('FRIDAY', 2)]
    assert all(l.subject_id == small_school.s1 and l.module_id is None for l in lessons)


def test_no_valid_slots_fails_without_writing(school):
    school.time_slots(days=['SATURDAY'])
    teacher = school.teacher('Alice')
    cls = school.school_class('S1A')
    school.assign_subject(teacher, cls, school.subject('History', 4))

    result = generate_timetable(school.repository, school.school_id)

    assert not result.success
    assert len(result.conflicts) == 1
    assert 'Not enough time slots available' in result.conflicts[0].message
    assert 'Required: 4 periods, Available: 0 slots' in result.conflicts[0].message
    assert school.timetable() == []


def test_capacity_failure_keeps_existing_timetable(small_school):
    generate_timetable(small_school.repository, small_school.school_id)
    small_school.assign_subject(small_school.t1, small_school.c1, small_school.subject('Geography', 20))

    result = generate_timetable(small_school.repository, small_school.school_id)

    assert not result.success
    assert len(small_school.timetable()) == 4


def test_unavailable_day_is_never_used(school):
    school.time_slots(periods=[1, 2])
    teacher = school.teacher('Alice', unavailable_days=['MONDAY'])
    cls = school.school_class('S1A')
    school.assign_subject(teacher, cls, school.subject('Kinyarwanda', 8))

    result = generate_timetable(school.repository, school.school_id)

    assert result.success
    assert result.conflicts == []
    lessons = school.timetable()
    assert len(lessons) == 8
    assert all(l.day != 'MONDAY' for l in lessons)
    assert {l.day for l in lessons} == {'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY'}


def test_complementary_module_fills_the_remaining_gap(school):
    school.time_slots(days=['MONDAY'], periods=[1, 2])
    trainer = school.teacher('Eric')
    target = school.school_class('L4 SOD', 'L4')
    other = school.school_class('L5 SOD', 'L5')
    first = school.module('Sports', 1, 'COMPLEMENTARY')
    second = school.module('Music', 1, 'COMPLEMENTARY')
    school.assign_module(trainer, target, first)
    school.assign_module(trainer, target, second)
    busy = school.module('Ethics', 1, 'COMPLEMENTARY')
    school.assign_module(trainer, other, busy)
    school.repository.replace_timetables(school.school_id, [ScheduledLesson(
        teacher_id=trainer, class_id=other, day='MONDAY', period=1,
        time_slot_id=school.slot_id('MONDAY', 1), module_id=busy)], class_id=other)

    result = generate_timetable_for_class(school.repository, school.school_id, target)

    assert result.success
    assert result.lessons_scheduled == 1
    placed = school.timetable(class_id=target)
    assert [(l.day, l.period, l.module_id) for l in placed] == [('MONDAY', 2, first)]
    assert len(result.conflicts) == 1
    assert 'Music' in result.conflicts[0].message
    assert 'fills remaining free spaces' in result.conflicts[0].message
    # the other class keeps its lesson
    assert len(school.timetable(class_id=other)) == 1


def test_busy_school_respects_every_rule(busy_school):
    result = generate_timetable(busy_school.repository, busy_school.school_id)

    assert result.success
    lessons = busy_school.timetable()
    assert len(lessons) == result.lessons_scheduled
    assert_timetable_invariants(lessons)

    carol, dan = busy_school.teachers[2:]
    assert not any(l.teacher_id == carol and l.day == 'FRIDAY' for l in lessons)
    assert not any(l.teacher_id == dan and l.period in (1, 2) for l in lessons)

    placed_periods = len(lessons)
    missing = 33 - placed_periods
    assert missing >= 0
    if missing:
        assert result.conflicts


def test_generation_is_repeatable(busy_school):
    first = generate_timetable(busy_school.repository, busy_school.school_id)
    first_lessons = placements(busy_school.timetable())
    second = generate_timetable(busy_school.repository, busy_school.school_id)

    assert placements(busy_school.timetable()) == first_lessons
    assert [c.message for c in first.conflicts] == [c.message for c in second.conflicts]


def test_class_regeneration_leaves_other_classes_alone(busy_school):
    generate_timetable(busy_school.repository, busy_school.school_id)
    s1a, s2a, l4 = busy_school.classes
    others_before = placements(busy_school.timetable(exclude_class_id=s1a))

    result = generate_timetable_for_class(busy_school.repository, busy_school.school_id, s1a, regenerate=True)

    assert result.success
    assert placements(busy_school.timetable(exclude_class_id=s1a)) == others_before
    assert len(busy_school.timetable(class_id=s1a)) == result.lessons_scheduled
    assert_timetable_invariants(busy_school.timetable())


def test_teacher_regeneration(busy_school):
    generate_timetable(busy_school.repository, busy_school.school_id)
    alice = busy_school.teachers[0]
    others_before = placements(busy_school.timetable(exclude_teacher_id=alice))

    result = generate_timetable_for_teacher(busy_school.repository, busy_school.school_id, alice)

    assert result.success
    assert result.lessons_scheduled == 10
    assert placements(busy_school.timetable(exclude_teacher_id=alice)) == others_before
    assert_timetable_invariants(busy_school.timetable())


def test_incremental_class_run_only_adds_missing_periods(small_school):
    generate_timetable(small_school.repository, small_school.school_id)
    small_school.connection.execute('''
        DELETE FROM timetables WHERE time_slot_id IN (
            SELECT time_slot_id FROM time_slots WHERE day = 'MONDAY')
    ''')
    small_school.connection.commit()
    kept = placements(small_school.timetable())

    result = generate_timetable_for_class(small_school.repository, small_school.school_id,
                                          small_school.c1, incremental=True)

    assert result.success
    assert result.lessons_scheduled == 2
    lessons = placements(small_school.timetable())
    assert len(lessons) == 4
    assert set(kept) <= set(lessons)


def test_incremental_run_with_nothing_missing(small_school):
    generate_timetable(small_school.repository, small_school.school_id)
    before = placements(small_school.timetable())

    result = generate_timetable_for_class(small_school.repository, small_school.school_id,
                                          small_school.c1, incremental=True)

    assert result.success
    assert result.lessons_scheduled == 0
    assert placements(small_school.timetable()) == before


def test_scope_without_lessons(small_school):
    other = small_school.school_class('S6B')
    idle = small_school.teacher('Idle')

    class_result = generate_timetable_for_class(small_school.repository, small_school.school_id, other)
    teacher_result = generate_timetable_for_teacher(small_school.repository, small_school.school_id, idle)

    assert not class_result.success
    assert class_result.conflicts[0].message == 'No lessons found for the selected class'
    assert teacher_result.conflicts[0].message == 'No lessons found for the selected teacher'


def test_school_without_assignments(school):
    school.default_time_slots()
    result = generate_timetable(school.repository, school.school_id)
    assert not result.success
    assert result.conflicts[0].message == 'No lessons to schedule'


def test_storage_errors_become_an_internal_error_conflict(small_school, monkeypatch):
    def broken(*args, **kwargs):
        raise sqlite3.OperationalError('disk I/O error')

    monkeypatch.setattr(small_school.repository, 'list_time_slots', broken)
    result = generate_timetable(small_school.repository, small_school.school_id)

    assert not result.success
    assert result.conflicts[-1].message == 'Timetable generation failed due to an internal error'
    assert small_school.timetable() == []


def test_unknown_school(school):
    result = TimetableGenerator(school.repository, school.school_id + 100).generate()
    assert not result.success
    assert 'internal error' in result.conflicts[0].message

    with pytest.raises(SchoolNotFoundError):
        AssignmentLoader(school.repository, school.school_id + 100).ensure_school()


def test_outstanding_lessons_subtracts_persisted_periods(small_school):
    blocks = prepare_lessons_for_school(AssignmentLoader(small_school.repository, small_school.school_id))
    existing = [ScheduledLesson(teacher_id=small_school.t1, class_id=small_school.c1, day='MONDAY',
                                period=p, time_slot_id=None, subject_id=small_school.s1) for p in (1, 2, 3)]

    remaining = outstanding_lessons(blocks, existing)

    assert [b.block_size for b in remaining] == [1]
    assert remaining[0].lesson_index == 2


def test_teacher_constraints_parse_period_tokens(school):
    teacher = school.teacher('Alice', unavailable_days=['monday'], unavailable_periods=['P3', '7', 'late'])
    constraints = AssignmentLoader(school.repository, school.school_id).load_teacher_constraints()
    assert constraints[teacher].unavailable_days == ['MONDAY']
    assert constraints[teacher].unavailable_periods == [3, 7]
