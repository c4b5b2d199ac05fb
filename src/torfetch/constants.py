"""
Constants and configuration values for torfetch.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the package.
"""

# Tor Browser distribution
DEFAULT_REPOSITORY_URL = "https://dist.torproject.org/torbrowser/"
DEFAULT_LOCALE = "en-US"

# Tor Browser Developers signing key
TOR_BROWSER_KEY_FINGERPRINT = "EF6E286DDA85EA2A4BA7DE684E2C6E8793298290"
OPENPGP_KEYS_ENDPOINT = "https://keys.openpgp.org/vks/v1/by-fingerprint/"
SIGNATURE_EXTENSION = ".asc"

# Index page parsing
VERSION_ANCHOR_PATTERN = (
    r'<a[^>]+href="/?(?P<version>\d{1,3}\.\d{1,3}[a.]?\d{0,3})/?"[^>]*>'
)
ALPHA_MARKER = "a"

# Release file naming
MAIN_BUNDLE_TEMPLATE = "tor-browser-{platform}{arch}-{version}_{locale}.mar"
AUXILIARY_TOOL_TEMPLATE = "mar-tools-{platform}{arch}.zip"

# Extraction
MAR_TOOLS_DIR_NAME = "mar-tools"
SIGNMAR_BINARY_NAME = "signmar"
UNPACKED_TOR_BROWSER_DIR_NAME = "tor-browser"
SCRATCH_DIR_PREFIX = "torfetch-"
DECOMPRESSED_SUFFIX = ".decompressed"

# Normalized output layout
TOR_BINARY_FILENAME = "tor"
WINDOWS_EXECUTABLE_SUFFIX = ".exe"
TOR_DATA_FILES = ("torrc-defaults", "geoip", "geoip6")

# Network defaults
DEFAULT_REQUEST_TIMEOUT = 300
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_CONCURRENT = 4
BYTES_PER_MEGABYTE = 1024 * 1024
FILE_SIZE_MB_LOGGING_THRESHOLD = 1.0
HTTP_STATUS_ERROR_THRESHOLD = 400

EXECUTE_PERMISSION_BITS = 0o111

# Logging configuration
LOGGER_NAME = "torfetch"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "torfetch.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Configuration file
APP_NAME = "torfetch"
CONFIG_FILE_NAME = "torfetch.yaml"

# Environment variable names
LOG_LEVEL_ENV_VAR = "TORFETCH_LOG_LEVEL"
REPOSITORY_URL_ENV_VAR = "TORFETCH_REPOSITORY_URL"
