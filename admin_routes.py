from flask import Blueprint, current_app, jsonify, request, session
import sqlite3

from auth import current_school_id, login_required, school_required
from database import get_db, get_repository, join_csv
from models import ModuleCategory
from time_grid import default_time_slots

admin_bp = Blueprint('admin_bp', __name__, url_prefix='/api/admin')


def _created(message, **extra):
    return jsonify({'status': 'success', 'message': message, **extra}), 201


def _error(message, status=400):
    return jsonify({'status': 'error', 'message': message}), status


def _positive_int(data, key):
    value = int(data[key])
    if value < 1:
        raise ValueError(f'{key} must be at least 1')
    return value


@admin_bp.route('/add_school', methods=['POST'])
@login_required
def add_school():
    data = request.get_json(silent=True) or {}
    db = get_db()
    try:
        cur = db.execute('INSERT INTO schools (name, status) VALUES (?, ?)',
                         (data['name'], data.get('status', 'APPROVED')))
        school_id = cur.lastrowid
        if session.get('school_id') is None:
            db.execute('UPDATE admins SET school_id = ? WHERE id = ?', (school_id, session['admin_id']))
            session['school_id'] = school_id
        db.commit()
        return _created('School added successfully!', school_id=school_id)
    except sqlite3.IntegrityError:
        return _error(f"School \"{data.get('name')}\" already exists.")
    except KeyError as e:
        return _error(f'Missing field: {e}')


@admin_bp.route('/add_teacher', methods=['POST'])
@login_required
@school_required
def add_teacher():
    data = request.get_json(silent=True) or {}
    db = get_db()
    try:
        cur = db.execute('''
            INSERT INTO teachers (school_id, name, role, unavailable_days, unavailable_periods)
            VALUES (?, ?, ?, ?, ?)
        ''', (current_school_id(), data['name'], data.get('role', 'TEACHER').upper(),
              join_csv([d.upper() for d in data.get('unavailable_days', [])]),
              join_csv(data.get('unavailable_periods', []))))
        db.commit()
        return _created('Teacher added successfully!', teacher_id=cur.lastrowid)
    except KeyError as e:
        return _error(f'Missing field: {e}')


@admin_bp.route('/teachers/<int:teacher_id>/availability', methods=['POST'])
@login_required
@school_required
def set_teacher_availability(teacher_id):
    data = request.get_json(silent=True) or {}
    db = get_db()
    cur = db.execute('''
        UPDATE teachers SET unavailable_days = ?, unavailable_periods = ?
        WHERE teacher_id = ? AND school_id = ?
    ''', (join_csv([d.upper() for d in data.get('unavailable_days', [])]),
          join_csv(data.get('unavailable_periods', [])), teacher_id, current_school_id()))
    db.commit()
    if cur.rowcount == 0:
        return _error('Teacher not found', 404)
    return jsonify({'status': 'success', 'message': 'Availability updated successfully!'})


@admin_bp.route('/add_class', methods=['POST'])
@login_required
@school_required
def add_class():
    data = request.get_json(silent=True) or {}
    db = get_db()
    try:
        cur = db.execute('INSERT INTO classes (school_id, name, level) VALUES (?, ?, ?)',
                         (current_school_id(), data['name'], data.get('level')))
        db.commit()
        return _created('Class added successfully!', class_id=cur.lastrowid)
    except sqlite3.IntegrityError:
        return _error(f"Class \"{data.get('name')}\" already exists.")
    except KeyError as e:
        return _error(f'Missing field: {e}')


@admin_bp.route('/add_subject', methods=['POST'])
@login_required
@school_required
def add_subject():
    data = request.get_json(silent=True) or {}
    db = get_db()
    try:
        cur = db.execute('INSERT INTO subjects (school_id, name, level, periods_per_week) VALUES (?, ?, ?, ?)',
                         (current_school_id(), data['name'], data.get('level'),
                          _positive_int(data, 'periods_per_week')))
        db.commit()
        return _created('Subject added successfully!', subject_id=cur.lastrowid)
    except KeyError as e:
        return _error(f'Missing field: {e}')
    except ValueError as e:
        return _error(str(e))


@admin_bp.route('/add_module', methods=['POST'])
@login_required
@school_required
def add_module():
    data = request.get_json(silent=True) or {}
    category = ModuleCategory.parse(data.get('category'))
    if category is None:
        return _error('category must be one of SPECIFIC, GENERAL, COMPLEMENTARY')
    db = get_db()
    try:
        cur = db.execute('''
            INSERT INTO modules (school_id, name, level, total_hours, category) VALUES (?, ?, ?, ?, ?)
        ''', (current_school_id(), data['name'], data.get('level'),
              _positive_int(data, 'total_hours'), category.value))
        db.commit()
        return _created('Module added successfully!', module_id=cur.lastrowid)
    except KeyError as e:
        return _error(f'Missing field: {e}')
    except ValueError as e:
        return _error(str(e))


@admin_bp.route('/add_teacher_subject', methods=['POST'])
@login_required
@school_required
def add_teacher_subject():
    data = request.get_json(silent=True) or {}
    db = get_db()
    try:
        cur = db.execute('''
            INSERT INTO teacher_class_subjects (school_id, teacher_id, class_id, subject_id) VALUES (?, ?, ?, ?)
        ''', (current_school_id(), data['teacher_id'], data['class_id'], data['subject_id']))
        db.commit()
        return _created('Teacher assignment added successfully!', assignment_id=cur.lastrowid)
    except sqlite3.IntegrityError:
        return _error('Error: Assignment already exists or references an unknown record.')
    except KeyError as e:
        return _error(f'Missing field: {e}')


@admin_bp.route('/add_trainer_module', methods=['POST'])
@login_required
@school_required
def add_trainer_module():
    data = request.get_json(silent=True) or {}
    db = get_db()
    try:
        cur = db.execute('''
            INSERT INTO trainer_class_modules (school_id, trainer_id, class_id, module_id) VALUES (?, ?, ?, ?)
        ''', (current_school_id(), data['trainer_id'], data['class_id'], data['module_id']))
        db.commit()
        return _created('Trainer assignment added successfully!', assignment_id=cur.lastrowid)
    except sqlite3.IntegrityError:
        return _error('Error: Assignment already exists or references an unknown record.')
    except KeyError as e:
        return _error(f'Missing field: {e}')


@admin_bp.route('/setup_time_slots', methods=['POST'])
@login_required
@school_required
def setup_time_slots():
    data = request.get_json(silent=True) or {}
    slots = default_time_slots(current_school_id(), include_evening=bool(data.get('include_evening')))
    get_repository().replace_time_slots(current_school_id(), slots)
    current_app.logger.info('Created %d time slots for school %s', len(slots), current_school_id())
    return _created('Time slots created successfully!', count=len(slots))


@admin_bp.route('/delete/<entity>/<int:id>', methods=['DELETE'])
@login_required
@school_required
def delete_entity(entity, id):
    db = get_db()
    id_map = {
        'teachers': 'teacher_id',
        'subjects': 'subject_id',
        'classes': 'class_id',
        'modules': 'module_id',
        'teacher_class_subjects': 'id',
        'trainer_class_modules': 'id',
    }
    if entity not in id_map:
        return _error('Invalid entity')
    column_id = id_map[entity]
    try:
        cur = db.execute(f'DELETE FROM {entity} WHERE {column_id} = ? AND school_id = ?', (id, current_school_id()))
        db.commit()
        if cur.rowcount == 0:
            return _error('Not found', 404)
        return jsonify({'status': 'success', 'message': f'{entity.capitalize()} deleted successfully.'})
    except sqlite3.IntegrityError:
        return _error(f'Error: Cannot delete {entity}, it is in use by another table.')
