"""Shared constants for file-search."""

# Default Gemini model used for queries
DEFAULT_MODEL = "gemini-2.5-flash"

# Resource prefixes
STORE_RESOURCE_PREFIX = "fileSearchStores/"
FILE_RESOURCE_PREFIX = "files/"
MODEL_RESOURCE_PREFIX = "models/"
DOCUMENT_RESOURCE_SEGMENT = "/documents/"
OPERATION_RESOURCE_SEGMENT = "/operations/"
UPLOAD_OPERATION_SEGMENT = "/upload/operations/"

# Canonical freshness window for the name-resolution cache (seconds).
# A configured TTL of zero normalizes to this value.
DEFAULT_CACHE_TTL = 300.0

# How long one-shot shell completion waits for a cold cache to fill (seconds)
DEFAULT_COMPLETION_WAIT = 1.5

# Per-request timeout for Gemini API calls (seconds)
DEFAULT_REQUEST_TIMEOUT = 60.0

# Polling for long-running upload/import operations (seconds)
OPERATION_POLL_INTERVAL = 2.0
OPERATION_TIMEOUT = 600.0

CONFIG_FILE_NAME = ".file-search.yaml"
