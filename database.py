import sqlite3
from typing import Iterable, List

from flask import current_app, g
from werkzeug.security import generate_password_hash

from models import ModuleCategory, ScheduledLesson, TeacherSubjectAssignment, TrainerModuleAssignment
from time_grid import TimeSlot

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS schools (
        school_id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'APPROVED'
    );
    CREATE TABLE IF NOT EXISTS admins (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        school_id INTEGER,
        FOREIGN KEY (school_id) REFERENCES schools(school_id)
    );
    CREATE TABLE IF NOT EXISTS teachers (
        teacher_id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'TEACHER',
        unavailable_days TEXT,
        unavailable_periods TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY (school_id) REFERENCES schools(school_id)
    );
    CREATE TABLE IF NOT EXISTS classes (
        class_id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        level TEXT,
        FOREIGN KEY (school_id) REFERENCES schools(school_id),
        UNIQUE(school_id, name)
    );
    CREATE TABLE IF NOT EXISTS subjects (
        subject_id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        level TEXT,
        periods_per_week INTEGER NOT NULL,
        FOREIGN KEY (school_id) REFERENCES schools(school_id)
    );
    CREATE TABLE IF NOT EXISTS modules (
        module_id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        level TEXT,
        total_hours INTEGER NOT NULL,
        category TEXT NOT NULL,
        FOREIGN KEY (school_id) REFERENCES schools(school_id)
    );
    CREATE TABLE IF NOT EXISTS teacher_class_subjects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        teacher_id INTEGER NOT NULL,
        class_id INTEGER NOT NULL,
        subject_id INTEGER NOT NULL,
        FOREIGN KEY (school_id) REFERENCES schools(school_id),
        FOREIGN KEY (teacher_id) REFERENCES teachers(teacher_id),
        FOREIGN KEY (class_id) REFERENCES classes(class_id),
        FOREIGN KEY (subject_id) REFERENCES subjects(subject_id),
        UNIQUE(teacher_id, class_id, subject_id)
    );
    CREATE TABLE IF NOT EXISTS trainer_class_modules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        trainer_id INTEGER NOT NULL,
        class_id INTEGER NOT NULL,
        module_id INTEGER NOT NULL,
        FOREIGN KEY (school_id) REFERENCES schools(school_id),
        FOREIGN KEY (trainer_id) REFERENCES teachers(teacher_id),
        FOREIGN KEY (class_id) REFERENCES classes(class_id),
        FOREIGN KEY (module_id) REFERENCES modules(module_id),
        UNIQUE(trainer_id, class_id, module_id)
    );
    CREATE TABLE IF NOT EXISTS time_slots (
        time_slot_id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        day TEXT NOT NULL,
        period INTEGER NOT NULL,
        name TEXT,
        start_time TEXT,
        end_time TEXT,
        session TEXT,
        is_break INTEGER NOT NULL DEFAULT 0,
        break_type TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY (school_id) REFERENCES schools(school_id)
    );
    CREATE TABLE IF NOT EXISTS timetables (
        timetable_id INTEGER PRIMARY KEY AUTOINCREMENT,
        school_id INTEGER NOT NULL,
        class_id INTEGER NOT NULL,
        teacher_id INTEGER NOT NULL,
        subject_id INTEGER,
        module_id INTEGER,
        time_slot_id INTEGER NOT NULL,
        FOREIGN KEY (school_id) REFERENCES schools(school_id),
        FOREIGN KEY (class_id) REFERENCES classes(class_id),
        FOREIGN KEY (teacher_id) REFERENCES teachers(teacher_id),
        FOREIGN KEY (subject_id) REFERENCES subjects(subject_id),
        FOREIGN KEY (module_id) REFERENCES modules(module_id),
        FOREIGN KEY (time_slot_id) REFERENCES time_slots(time_slot_id)
    );
'''

DAY_ORDER_SQL = '''
    CASE ts.day WHEN 'MONDAY' THEN 1 WHEN 'TUESDAY' THEN 2 WHEN 'WEDNESDAY' THEN 3
    WHEN 'THURSDAY' THEN 4 WHEN 'FRIDAY' THEN 5 WHEN 'SATURDAY' THEN 6 ELSE 7 END
'''


# --- DATABASE HELPERS ---
def connect(path):
    db = sqlite3.connect(path)
    db.row_factory = sqlite3.Row
    db.execute('PRAGMA foreign_keys = ON')
    return db


def get_db():
    db = getattr(g, '_database', None)
    if db is None:
        db = connect(current_app.config['DATABASE'])
        g._database = db
    return db


def close_connection(exception):
    db = getattr(g, '_database', None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    cur = db.cursor()
    cur.executescript(SCHEMA)

    cur.execute('SELECT * FROM admins')
    if cur.fetchone() is None:
        cur.execute('INSERT INTO admins (username, password_hash) VALUES (?, ?)',
                    (current_app.config['DEFAULT_ADMIN_USERNAME'],
                     generate_password_hash(current_app.config['DEFAULT_ADMIN_PASSWORD'])))
    db.commit()


def split_csv(value):
    if not value:
        return []
    return [part.strip() for part in value.split(',') if part.strip()]


def join_csv(values):
    return ','.join(str(v) for v in values) if values else None


def _time_slot(row) -> TimeSlot:
    return TimeSlot(
        id=row['time_slot_id'],
        school_id=row['school_id'],
        day=row['day'],
        period=row['period'],
        start_time=row['start_time'] or '',
        end_time=row['end_time'] or '',
        session=row['session'] or '',
        is_break=bool(row['is_break']),
        name=row['name'] or '',
        break_type=row['break_type'],
        is_active=bool(row['is_active']),
    )


class SchoolRepository:
    """Read and write access to one school's scheduling data."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection

    # --- reads ---
    def get_school(self, school_id):
        return self.connection.execute('SELECT * FROM schools WHERE school_id = ?', (school_id,)).fetchone()

    def get_class(self, school_id, class_id):
        return self.connection.execute('SELECT * FROM classes WHERE school_id = ? AND class_id = ?',
                                       (school_id, class_id)).fetchone()

    def get_teacher(self, school_id, teacher_id):
        return self.connection.execute('SELECT * FROM teachers WHERE school_id = ? AND teacher_id = ?',
                                       (school_id, teacher_id)).fetchone()

    def list_time_slots(self, school_id, active_only=True) -> List[TimeSlot]:
        sql = 'SELECT ts.* FROM time_slots ts WHERE ts.school_id = ?'
        if active_only:
            sql += ' AND ts.is_active = 1'
        sql += f' ORDER BY {DAY_ORDER_SQL}, ts.period, ts.start_time'
        return [_time_slot(row) for row in self.connection.execute(sql, (school_id,)).fetchall()]

    def list_teachers(self, school_id, active_only=True):
        sql = 'SELECT * FROM teachers WHERE school_id = ?'
        if active_only:
            sql += ' AND is_active = 1'
        return self.connection.execute(sql + ' ORDER BY teacher_id', (school_id,)).fetchall()

    def list_classes(self, school_id):
        return self.connection.execute('SELECT * FROM classes WHERE school_id = ? ORDER BY class_id',
                                       (school_id,)).fetchall()

    def list_subjects(self, school_id):
        return self.connection.execute('SELECT * FROM subjects WHERE school_id = ? ORDER BY subject_id',
                                       (school_id,)).fetchall()

    def list_modules(self, school_id):
        return self.connection.execute('SELECT * FROM modules WHERE school_id = ? ORDER BY module_id',
                                       (school_id,)).fetchall()

    def list_teacher_subject_assignments(self, school_id) -> List[TeacherSubjectAssignment]:
        rows = self.connection.execute('''
            SELECT a.teacher_id, a.class_id, a.subject_id, s.periods_per_week,
                   t.name AS teacher_name, s.name AS subject_name, c.name AS class_name,
                   c.level AS class_level, s.level AS subject_level
            FROM teacher_class_subjects a
            JOIN teachers t ON a.teacher_id = t.teacher_id
            JOIN subjects s ON a.subject_id = s.subject_id
            JOIN classes c ON a.class_id = c.class_id
            WHERE a.school_id = ?
            ORDER BY a.id
        ''', (school_id,)).fetchall()
        return [TeacherSubjectAssignment(
            teacher_id=row['teacher_id'],
            class_id=row['class_id'],
            subject_id=row['subject_id'],
            periods_per_week=row['periods_per_week'],
            teacher_name=row['teacher_name'] or '',
            subject_name=row['subject_name'] or '',
            class_name=row['class_name'] or '',
            class_level=row['class_level'] or '',
            subject_level=row['subject_level'] or '',
        ) for row in rows]

    def list_trainer_module_assignments(self, school_id) -> List[TrainerModuleAssignment]:
        rows = self.connection.execute('''
            SELECT a.trainer_id, a.class_id, a.module_id, m.total_hours, m.category,
                   t.name AS trainer_name, m.name AS module_name, c.name AS class_name,
                   c.level AS class_level, m.level AS module_level
            FROM trainer_class_modules a
            JOIN teachers t ON a.trainer_id = t.teacher_id
            JOIN modules m ON a.module_id = m.module_id
            JOIN classes c ON a.class_id = c.class_id
            WHERE a.school_id = ?
            ORDER BY a.id
        ''', (school_id,)).fetchall()
        return [TrainerModuleAssignment(
            trainer_id=row['trainer_id'],
            class_id=row['class_id'],
            module_id=row['module_id'],
            total_hours=row['total_hours'],
            category=ModuleCategory.parse(row['category']),
            trainer_name=row['trainer_name'] or '',
            module_name=row['module_name'] or '',
            class_name=row['class_name'] or '',
            class_level=row['class_level'] or '',
            module_level=row['module_level'] or '',
        ) for row in rows]

    def list_timetables(self, school_id, class_id=None, teacher_id=None,
                        exclude_class_id=None, exclude_teacher_id=None) -> List[ScheduledLesson]:
        sql = '''
            SELECT tt.*, ts.day, ts.period
            FROM timetables tt
            JOIN time_slots ts ON tt.time_slot_id = ts.time_slot_id
            WHERE tt.school_id = ?
        '''
        params = [school_id]
        if class_id is not None:
            sql += ' AND tt.class_id = ?'
            params.append(class_id)
        if teacher_id is not None:
            sql += ' AND tt.teacher_id = ?'
            params.append(teacher_id)
        if exclude_class_id is not None:
            sql += ' AND tt.class_id != ?'
            params.append(exclude_class_id)
        if exclude_teacher_id is not None:
            sql += ' AND tt.teacher_id != ?'
            params.append(exclude_teacher_id)
        sql += f' ORDER BY {DAY_ORDER_SQL}, ts.period, tt.timetable_id'
        return [ScheduledLesson(
            teacher_id=row['teacher_id'],
            class_id=row['class_id'],
            day=row['day'],
            period=row['period'],
            time_slot_id=row['time_slot_id'],
            subject_id=row['subject_id'],
            module_id=row['module_id'],
        ) for row in self.connection.execute(sql, params).fetchall()]

    def timetable_rows(self, school_id, class_id=None, teacher_id=None):
        """Persisted lessons joined with display names, for grids and exports."""
        sql = f'''
            SELECT tt.timetable_id, tt.class_id, tt.teacher_id, tt.subject_id, tt.module_id,
                   ts.day, ts.period, ts.start_time, ts.end_time,
                   t.name AS teacher_name, c.name AS class_name,
                   COALESCE(s.name, m.name) AS course_name, m.category
            FROM timetables tt
            JOIN time_slots ts ON tt.time_slot_id = ts.time_slot_id
            JOIN teachers t ON tt.teacher_id = t.teacher_id
            JOIN classes c ON tt.class_id = c.class_id
            LEFT JOIN subjects s ON tt.subject_id = s.subject_id
            LEFT JOIN modules m ON tt.module_id = m.module_id
            WHERE tt.school_id = ?
        '''
        params = [school_id]
        if class_id is not None:
            sql += ' AND tt.class_id = ?'
            params.append(class_id)
        if teacher_id is not None:
            sql += ' AND tt.teacher_id = ?'
            params.append(teacher_id)
        sql += f' ORDER BY {DAY_ORDER_SQL}, ts.period'
        return [dict(row) for row in self.connection.execute(sql, params).fetchall()]

    # --- writes ---
    def replace_timetables(self, school_id, lessons: Iterable[ScheduledLesson],
                           class_id=None, teacher_id=None, delete_existing=True):
        """Delete the scope's lessons and insert the new ones in one transaction."""
        where = 'school_id = ?'
        params = [school_id]
        if class_id is not None:
            where += ' AND class_id = ?'
            params.append(class_id)
        if teacher_id is not None:
            where += ' AND teacher_id = ?'
            params.append(teacher_id)

        with self.connection:
            if delete_existing:
                self.connection.execute(f'DELETE FROM timetables WHERE {where}', params)
            self.connection.executemany('''
                INSERT INTO timetables (school_id, class_id, teacher_id, subject_id, module_id, time_slot_id)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', [(school_id, l.class_id, l.teacher_id, l.subject_id, l.module_id, l.time_slot_id)
                  for l in lessons])

    def replace_time_slots(self, school_id, slots: Iterable[TimeSlot]):
        """Deactivate the current grid and insert a new one."""
        with self.connection:
            self.connection.execute('UPDATE time_slots SET is_active = 0 WHERE school_id = ?', (school_id,))
            self.connection.executemany('''
                INSERT INTO time_slots (school_id, day, period, name, start_time, end_time, session,
                                        is_break, break_type, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
            ''', [(school_id, s.day, s.period, s.name, s.start_time, s.end_time, s.session,
                   int(s.is_break), s.break_type) for s in slots])


def get_repository() -> SchoolRepository:
    return SchoolRepository(get_db())
