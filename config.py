import os
import dotenv
dotenv.load_dotenv()
basedir = os.path.abspath(os.path.dirname(__file__))

# Flask configuration
SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-please-change-in-production'
DEBUG = os.environ.get('FLASK_DEBUG', '1') == '1'

# Database configuration
if os.environ.get('VERCEL'):
    # Vercel filesystem is read-only, use ephemeral /tmp
    SQLALCHEMY_DATABASE_URI = 'sqlite:////tmp/timetable.db'
else:
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///' + os.path.join(basedir, 'timetable.db')
SQLALCHEMY_TRACK_MODIFICATIONS = False

# Logging
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

# Timetable search (Monte Carlo)
SIMULATION_ITERATIONS = int(os.environ.get('SIMULATION_ITERATIONS', 5000))
SIMULATION_TIMEOUT_MS = int(os.environ.get('SIMULATION_TIMEOUT_MS', 5000))  # 5 seconds max
FALLBACK_ATTEMPTS = int(os.environ.get('FALLBACK_ATTEMPTS', 100))

# Teaching periods
DEFAULT_TEACHING_PERIOD_ID = '621052'
TEACHING_PERIODS = {
    '621050': 'Summer 2024-2025 (All Campuses)',
    '621051': 'Semester 1 2025 (All Campuses)',
    '621052': 'Semester 2 2025 (All Campuses)',
}

# Stored unit data expires after 30 days
UNIT_CACHE_TTL_SECONDS = int(os.environ.get('UNIT_CACHE_TTL_SECONDS', 30 * 24 * 60 * 60))
