class ChatError(Exception):
    """Base class for failures reported back to a chat client."""


class ChatValidationError(ChatError):
    """A required field is missing or a value is outside its enum."""


class RateLimitExceeded(ChatError):
    """The sender is over its message quota."""
