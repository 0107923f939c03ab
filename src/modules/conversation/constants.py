"""Conversation module constants."""

from src.modules.pagination.types import SortOrder

# Conversation lists: most recent first
CONVERSATION_SORT_FIELD = "created_at"
CONVERSATION_SORT_ORDER = SortOrder.DESC

# Message lists: chronological display order
MESSAGE_SORT_FIELD = "created_at"
MESSAGE_SORT_ORDER = SortOrder.ASC

# Infinite scroll over messages: newest first
MESSAGE_CURSOR_SORT_ORDER = SortOrder.DESC

# Titles derived from the first message
MAX_TITLE_LENGTH = 100
