"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """Malformed or missing input, or a violated invariant."""


class NotFoundError(DomainException):
    """A requested entity does not exist."""


class UnavailableError(DomainException):
    """The product exists but is not currently sold."""


class InsufficientStockError(DomainException):
    """Tracked stock is lower than the requested quantity."""


class InvalidStateError(DomainException):
    """The operation is not allowed from the order's current status."""


class AlreadyMintedError(DomainException):
    """Tokens were already minted for this order."""


class UnsupportedMethodError(DomainException):
    """The requested payment rail is not supported."""


class SignatureError(DomainException):
    """The signed challenge does not belong to the claimed wallet."""


class AccessDeniedError(DomainException):
    """The wallet does not hold a qualifying token."""


class TransferredError(AccessDeniedError):
    """The wallet held a qualifying token before but no longer does."""


class PaymentFailedError(DomainException):
    """The payment provider or chain gateway rejected the payment."""


class MintingError(DomainException):
    """The minting backend rejected a mint request."""


class TransientError(DomainException):
    """A collaborator could not be reached; the caller may retry.

    ``retry_after`` is a hint in seconds.
    """

    def __init__(self, message: str, retry_after: float = 5.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RepositoryError(Exception):
    """A repository could not read or write its backing store."""
