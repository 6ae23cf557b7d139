"""
Configuration constants for photo tidy.
"""

# --- Scanning ---
# Used when the settings file has no include_extensions key
DEFAULT_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.heic', '.mp4', '.mov']

IMAGE_EXTS = {'.jpg', '.jpeg', '.jpe', '.png', '.heic', '.heif', '.tif', '.tiff',
              '.cr2', '.cr3', '.nef', '.arw', '.orf', '.rw2', '.dng', '.webp'}
VIDEO_EXTS = {'.mp4', '.mov', '.m4v', '.avi', '.mts', '.m2ts', '.3gp', '.mpg', '.mpeg'}

# --- Hashing ---
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading

# --- MIME Detection ---
MIME_SNIFF_BYTES = 2048  # enough for libmagic to see container headers

# Extensions the platform mimetypes table often misses
EXTRA_MIME_TYPES = {
    '.heic': 'image/heic',
    '.heif': 'image/heif',
    '.dng': 'image/x-adobe-dng',
    '.cr2': 'image/x-canon-cr2',
    '.cr3': 'image/x-canon-cr3',
    '.nef': 'image/x-nikon-nef',
    '.arw': 'image/x-sony-arw',
    '.mts': 'video/mp2t',
    '.m2ts': 'video/mp2t',
}

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]
MAKE_TAG = 'Image Make'
MODEL_TAG = 'Image Model'

# --- Organization ---
DEFAULT_PATTERN = "{Date}/{OriginalName}"
PATTERN_FIELDS = ('Date', 'Year', 'Month', 'Day', 'Hash', 'OriginalName', 'Ext')
ILLEGAL_PATH_CHARS = '<>:"/\\|?*'
MAX_UNIQUE_ATTEMPTS = 999

# --- Database ---
SQL_BATCH_SIZE = 900  # ids per IN (...) query

# --- Action Ledger ---
ACTION_MOVE = "move"
ERROR_MSG_LIMIT = 240

# --- Settings ---
SETTINGS_ENV_VAR = "PHOTO_TIDY_CONFIG"
DEFAULT_SETTINGS_FILE = "settings.yaml"
DEFAULT_DB_FOLDER = "db"
DEFAULT_DB_FILE = "media.db"
