from collections import defaultdict

import pytest

from app import app as flask_app
from database import SCHEMA, SchoolRepository, connect, init_db, join_csv
from time_grid import SCHOOL_DAY_NAMES, Session, TimeSlot, default_time_slots


class SchoolBuilder:
    """Inserts a small school straight into sqlite."""

    def __init__(self, connection, name='Green Hills School', status='APPROVED'):
        self.connection = connection
        self.repository = SchoolRepository(connection)
        cur = connection.execute('INSERT INTO schools (name, status) VALUES (?, ?)', (name, status))
        self.school_id = cur.lastrowid
        connection.commit()

    def _insert(self, sql, params):
        cur = self.connection.execute(sql, params)
        self.connection.commit()
        return cur.lastrowid

    def teacher(self, name, unavailable_days=(), unavailable_periods=()):
        return self._insert(
            'INSERT INTO teachers (school_id, name, unavailable_days, unavailable_periods) VALUES (?, ?, ?, ?)',
            (self.school_id, name, join_csv(unavailable_days), join_csv(unavailable_periods)))

    def school_class(self, name, level='S1'):
        return self._insert('INSERT INTO classes (school_id, name, level) VALUES (?, ?, ?)',
                            (self.school_id, name, level))

    def subject(self, name, periods_per_week, level=None):
        return self._insert('INSERT INTO subjects (school_id, name, level, periods_per_week) VALUES (?, ?, ?, ?)',
                            (self.school_id, name, level, periods_per_week))

    def module(self, name, total_hours, category, level=None):
        return self._insert(
            'INSERT INTO modules (school_id, name, level, total_hours, category) VALUES (?, ?, ?, ?, ?)',
            (self.school_id, name, level, total_hours, category))

    def assign_subject(self, teacher_id, class_id, subject_id):
        return self._insert(
            'INSERT INTO teacher_class_subjects (school_id, teacher_id, class_id, subject_id) VALUES (?, ?, ?, ?)',
            (self.school_id, teacher_id, class_id, subject_id))

    def assign_module(self, trainer_id, class_id, module_id):
        return self._insert(
            'INSERT INTO trainer_class_modules (school_id, trainer_id, class_id, module_id) VALUES (?, ?, ?, ?)',
            (self.school_id, trainer_id, class_id, module_id))

    def time_slots(self, days=SCHOOL_DAY_NAMES, periods=range(1, 11)):
        slots = [TimeSlot(id=None, school_id=self.school_id, day=day, period=period,
                          start_time='', end_time='',
                          session=Session.MORNING.value if period <= 5 else Session.AFTERNOON.value,
                          name=f'Period {period}')
                 for day in days for period in periods]
        self.repository.replace_time_slots(self.school_id, slots)

    def default_time_slots(self, include_evening=False):
        self.repository.replace_time_slots(self.school_id, default_time_slots(self.school_id, include_evening))

    def slot_id(self, day, period):
        return self.connection.execute(
            'SELECT time_slot_id FROM time_slots WHERE school_id = ? AND day = ? AND period = ? AND is_active = 1',
            (self.school_id, day, period)).fetchone()[0]

    def timetable(self, **filters):
        return self.repository.list_timetables(self.school_id, **filters)


def assert_timetable_invariants(lessons):
    teacher_slots = defaultdict(list)
    class_slots = defaultdict(list)
    teacher_class_day = defaultdict(int)
    for lesson in lessons:
        assert lesson.day in SCHOOL_DAY_NAMES
        assert 1 <= lesson.period <= 10
        teacher_slots[(lesson.teacher_id, lesson.day)].append(lesson.period)
        class_slots[(lesson.class_id, lesson.day)].append(lesson.period)
        teacher_class_day[(lesson.teacher_id, lesson.class_id, lesson.day)] += 1

    for periods in list(teacher_slots.values()) + list(class_slots.values()):
        assert len(periods) == len(set(periods)), 'double booking'

    for periods in teacher_slots.values():
        run = longest = 0
        previous = None
        for period in sorted(periods):
            run = run + 1 if previous is not None and period == previous + 1 else 1
            longest = max(longest, run)
            previous = period
        assert longest <= 2, f'teacher run of {longest} consecutive periods'

    assert all(count <= 3 for count in teacher_class_day.values())


@pytest.fixture
def connection(tmp_path):
    conn = connect(str(tmp_path / 'engine.db'))
    conn.executescript(SCHEMA)
    yield conn
    conn.close()


@pytest.fixture
def school(connection):
    return SchoolBuilder(connection)


@pytest.fixture
def app(tmp_path):
    flask_app.config.update(TESTING=True, DATABASE=str(tmp_path / 'app.db'))
    with flask_app.app_context():
        init_db()
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    response = client.post('/admin/login', json={'username': 'admin', 'password': 'admin123'})
    assert response.status_code == 200
    return client
