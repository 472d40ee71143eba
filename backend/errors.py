"""Exception taxonomy shared by the scheduler, streak engine and API."""


class StudyCardsError(Exception):
    """Base exception for all StudyCards errors."""


class InvalidInputError(StudyCardsError):
    """Raised for malformed input (unknown rating, bad id). Never persisted."""


class NotFoundError(StudyCardsError):
    """Raised when a referenced user, deck or flashcard does not exist."""


class InsufficientResourceError(StudyCardsError):
    """Raised when a consumable (e.g. a streak freeze) has a zero balance."""


class PersistenceError(StudyCardsError):
    """Raised when the store is unreachable or a guarded write lost a race."""
