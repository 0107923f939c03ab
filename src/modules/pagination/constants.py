"""Pagination defaults."""

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20

# Offset strategies sort newest first unless told otherwise
DEFAULT_SORT_FIELD = "created_at"

# Cursor strategies sort by identity unless told otherwise
CURSOR_SORT_FIELD = "id"

# Tie-breaker column appended to every ORDER BY
IDENTITY_FIELD = "id"

# Label of the window count column used by aggregate_page
TOTAL_LABEL = "_total"

CURSOR_KEYS = frozenset({"field", "value", "_id"})
