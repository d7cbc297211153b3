from flask import Flask, request, jsonify, session, send_file
import io
import logging
from werkzeug.security import check_password_hash

import config
from admin_routes import admin_bp
from auth import current_school_id, login_required, school_required
from database import close_connection, get_db, get_repository, init_db
from exports import to_csv_text, to_excel_bytes, to_pdf_bytes
from time_grid import SCHOOL_DAY_NAMES
from timetable_generator import TimetableGenerator

app = Flask(__name__)
app.config.from_object(config)
app.register_blueprint(admin_bp)
app.teardown_appcontext(close_connection)

logging.basicConfig(level=app.config['LOG_LEVEL'],
                    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s')


@app.cli.command('init-db')
def init_db_command():
    init_db()
    print('Initialized the database.')


# --- AUTHENTICATION ---
@app.route('/admin/login', methods=['POST'])
def admin_login():
    data = request.get_json(silent=True) or request.form
    username = data.get('username', '')
    password = data.get('password', '')

    admin = get_db().execute('SELECT * FROM admins WHERE username = ?', (username,)).fetchone()
    if admin and check_password_hash(admin['password_hash'], password):
        session.clear()
        session.permanent = bool(data.get('remember'))
        session['admin_id'] = admin['id']
        session['admin_username'] = admin['username']
        session['school_id'] = admin['school_id']
        return jsonify({'status': 'success', 'school_id': admin['school_id']})

    app.logger.warning('Failed login attempt for %r', username)
    return jsonify({'status': 'error', 'message': 'Invalid username or password.'}), 401


@app.route('/admin/logout')
def admin_logout():
    session.clear()
    return jsonify({'status': 'success', 'message': 'You have been successfully logged out.'})


# --- ROUTES ---
@app.route('/')
def index():
    school_id = current_school_id()
    classes = []
    if school_id is not None:
        classes = [{'class_id': r['class_id'], 'name': r['name'], 'level': r['level']}
                   for r in get_repository().list_classes(school_id)]
    return jsonify({'classes': classes})


@app.route('/api/generate', methods=['POST'])
@login_required
@school_required
def api_generate():
    data = request.get_json(silent=True) or {}
    school_id = current_school_id()
    repository = get_repository()

    school = repository.get_school(school_id)
    if school is None or school['status'] != 'APPROVED':
        return jsonify({'error': 'School not approved or not found'}), 403

    try:
        class_id = int(data['classId']) if data.get('classId') is not None else None
        teacher_id = int(data['teacherId']) if data.get('teacherId') is not None else None
    except (TypeError, ValueError):
        return jsonify({'error': 'classId and teacherId must be integers'}), 400
    incremental = bool(data.get('incremental', False))
    regenerate = bool(data.get('regenerate', False))
    generator = TimetableGenerator(repository, school_id)

    if class_id is not None:
        school_class = repository.get_class(school_id, class_id)
        if school_class is None:
            return jsonify({'error': 'Class not found'}), 404
        result = generator.generate_for_class(class_id, incremental=incremental, regenerate=regenerate)
        target = f"class {school_class['name']}"
    elif teacher_id is not None:
        teacher = repository.get_teacher(school_id, teacher_id)
        if teacher is None:
            return jsonify({'error': 'Teacher not found'}), 404
        result = generator.generate_for_teacher(teacher_id, incremental=incremental, regenerate=regenerate)
        target = teacher['name']
    else:
        result = generator.generate()
        target = school['name']

    payload = result.to_dict()
    payload['conflictCount'] = len(result.conflicts)
    payload['mode'] = 'incremental' if incremental and not regenerate else 'regeneration'
    if result.success:
        payload['message'] = f'Timetable generated successfully for {target}'
        return jsonify(payload)
    payload['error'] = f'Timetable generation failed for {target}'
    return jsonify(payload), 500


def _grid(rows):
    grid = {day: {} for day in SCHOOL_DAY_NAMES}
    for row in rows:
        grid.setdefault(row['day'], {})[row['period']] = row
    return grid


@app.route('/api/timetables/class/<int:class_id>')
@login_required
@school_required
def api_class_timetable(class_id):
    repository = get_repository()
    if repository.get_class(current_school_id(), class_id) is None:
        return jsonify({'error': 'Class not found'}), 404
    rows = repository.timetable_rows(current_school_id(), class_id=class_id)
    return jsonify({'grid': _grid(rows), 'days': SCHOOL_DAY_NAMES, 'count': len(rows)})


@app.route('/api/timetables/teacher/<int:teacher_id>')
@login_required
@school_required
def api_teacher_timetable(teacher_id):
    repository = get_repository()
    if repository.get_teacher(current_school_id(), teacher_id) is None:
        return jsonify({'error': 'Teacher not found'}), 404
    rows = repository.timetable_rows(current_school_id(), teacher_id=teacher_id)
    return jsonify({'grid': _grid(rows), 'days': SCHOOL_DAY_NAMES, 'count': len(rows)})


def _class_rows(class_id):
    repository = get_repository()
    school_class = repository.get_class(current_school_id(), class_id)
    if school_class is None:
        return None, None
    return school_class, repository.timetable_rows(current_school_id(), class_id=class_id)


@app.route('/api/export/pdf/<int:class_id>')
@login_required
@school_required
def export_timetable_pdf(class_id):
    school_class, rows = _class_rows(class_id)
    if school_class is None:
        return jsonify({'error': 'Class not found'}), 404
    data = to_pdf_bytes(rows, title=f"Timetable - {school_class['name']}")
    return send_file(io.BytesIO(data), mimetype='application/pdf', as_attachment=True,
                     download_name=f"timetable_{school_class['name']}.pdf")


@app.route('/api/export/excel/<int:class_id>')
@login_required
@school_required
def export_timetable_excel(class_id):
    school_class, rows = _class_rows(class_id)
    if school_class is None:
        return jsonify({'error': 'Class not found'}), 404
    data = to_excel_bytes(rows, sheet_name=school_class['name'])
    return send_file(io.BytesIO(data),
                     mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
                     as_attachment=True, download_name=f"timetable_{school_class['name']}.xlsx")


@app.route('/api/export/csv/<int:class_id>')
@login_required
@school_required
def export_timetable_csv(class_id):
    school_class, rows = _class_rows(class_id)
    if school_class is None:
        return jsonify({'error': 'Class not found'}), 404
    return send_file(io.BytesIO(to_csv_text(rows).encode('utf-8')), mimetype='text/csv',
                     as_attachment=True, download_name=f"timetable_{school_class['name']}.csv")


if __name__ == '__main__':
    with app.app_context():
        init_db()
    app.run(debug=True)
