class QuizBuzzError(Exception):
    """Base class for errors raised by the buzzer core."""


class StorageFailure(QuizBuzzError):
    """A read or write against the player/question store failed.

    The store has already rolled back its session when this is raised, so
    nothing partially written is visible to the next request.
    """


class MalformedMessage(QuizBuzzError):
    """An inbound socket payload could not be understood."""
