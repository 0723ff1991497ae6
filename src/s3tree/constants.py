from pathlib import Path

APP_DIR = Path.home() / ".s3tree"
LOG_DIR = APP_DIR / "logs"
LOG_FILE = LOG_DIR / "s3tree.log"
KEYRING_SERVICE = "s3tree"

# Key space
DELIMITER = "/"
PAGE_MARKER_PREFIX = "page_"

# Listing defaults
DEFAULT_PAGE_SIZE = 1000
LISTING_STRATEGY_NATIVE = "native"
LISTING_STRATEGY_SLICE = "slice"
DEFAULT_LISTING_STRATEGY = LISTING_STRATEGY_SLICE

# Transfer defaults
DEFAULT_CONCURRENCY = 10
DEFAULT_SCAN_WORKERS = 5
DOWNLOAD_CHUNK_SIZE = 1024 * 1024  # 1 MB

# Collision resolution
MAX_NAME_PROBES = 1000

# Preview cache
PREVIEW_CACHE_MAX_ENTRIES = 200

# Logging
MAX_LOG_SIZE = 5 * 1024 * 1024  # 5 MB per file
LOG_BACKUP_COUNT = 3
