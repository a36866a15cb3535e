"""Core constants: backend limits and shared literal values."""

# Firestore rejects a commit with more than this many writes.
BACKEND_MAX_BATCH_WRITES = 500

# Largest page any single query may request.
MAX_PAGE_SIZE = 500

DEFAULT_VIEW_PAGE_SIZE = 50
DEFAULT_PREFETCH_THRESHOLD = 5

# Queued-operation threshold for cascading deletes (headroom under the hard limit).
DEFAULT_DELETE_BATCH_CAP = 450
DEFAULT_DELETE_PAGE_SIZE = 450

# Pseudo-field that orders by document id.
DOCUMENT_ID_FIELD = "__name__"
