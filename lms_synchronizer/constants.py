from pathlib import Path

DATA_DIR = Path.cwd() / 'lms_data'

DEFAULT_CANVAS_URL = 'https://canvas.instructure.com'
DEFAULT_MOODLE_URL = 'http://localhost:8888/moodle'
CANVAS_API_PATH = '/api/v1'
MOODLE_REST_PATH = '/webservice/rest/server.php'

DEFAULT_TIME_ZONE = 'America/New_York'
DEFAULT_MOODLE_CATEGORY = 1
# Moodle's HTML summary format
MOODLE_FORMAT_HTML = 1

# AES-256-GCM token encryption
KEY_SIZE = 32
IV_SIZE = 12
KEY_SALT = b'uncover-learning-static-salt'

DATE_FORMAT = '%Y-%m-%d'
