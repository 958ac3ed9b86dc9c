"""Errors raised out of a turn to its caller."""


class TurnRateLimitedError(Exception):
    """The user started too many turns in the current window."""

    def __init__(self, message: str = "Too many requests. Please wait a moment before trying again."):
        super().__init__(message)


class ModelCallError(Exception):
    """The language model call failed; the turn cannot continue."""


class ConversationNotFoundError(LookupError):
    """No conversation with the given id is visible to the caller."""
