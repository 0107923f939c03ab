"""User lifecycle constants."""

WELCOME_EMAIL_SUBJECT = "Welcome to IdeaSpark"
WELCOME_EMAIL_HTML = (
    "<p>Welcome to IdeaSpark!</p>"
    "<p>Start a conversation and we'll help you shape it into a project idea.</p>"
)
