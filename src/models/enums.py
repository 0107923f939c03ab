import enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class Sender(str, enum.Enum):
    USER = "user"
    SYSTEM = "system"


class IdeaCategory(str, enum.Enum):
    LEARNING = "Learning"
    STARTUP = "Startup"
    ALL = "All"


class IdeaIcon(str, enum.Enum):
    CODE = "code"
    LIGHTNING = "lightning"
    BOOK = "book"
