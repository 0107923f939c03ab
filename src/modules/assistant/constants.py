"""Assistant reply constants: generation parameters and fixed texts."""

# Generation parameters
TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 2048
TOP_P = 1.0
TOP_K = 1

# Number of most recent messages sent as context
DEFAULT_HISTORY_LIMIT = 10

# Provider roles
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

# Typing indicator notes
TYPING_NOTE = "Thinking..."

# Persisted when generation fails for any reason
APOLOGY_MESSAGE = "Sorry, I could not generate a response at this moment. Please try again."
