import os
from datetime import timedelta

# --- CONFIG ---
DATABASE = os.environ.get('TIMETABLE_DB', 'timetable.db')
SECRET_KEY = os.environ.get('TIMETABLE_SECRET_KEY', 'change-me-in-production')
PERMANENT_SESSION_LIFETIME = timedelta(days=30)
LOG_LEVEL = os.environ.get('TIMETABLE_LOG_LEVEL', 'INFO')

# Seeded on first run so a fresh install can log in
DEFAULT_ADMIN_USERNAME = os.environ.get('TIMETABLE_ADMIN_USER', 'admin')
DEFAULT_ADMIN_PASSWORD = os.environ.get('TIMETABLE_ADMIN_PASSWORD', 'admin123')
