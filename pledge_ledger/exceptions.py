"""Custom exception hierarchy for pledge-ledger."""


class PledgeLedgerError(Exception):
    """Base exception for all pledge-ledger errors."""


class EntityNotFoundError(PledgeLedgerError):
    """Raised when a referenced pledge, customer or payment does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(PledgeLedgerError):
    """Raised when an entity is in an invalid state for the operation."""


class InvalidInputError(PledgeLedgerError, ValueError):
    """Raised when caller-supplied values fail validation."""


class MissingPrerequisiteError(PledgeLedgerError):
    """Raised when strict interest math runs on a pledge missing amount, rate or date."""


class ConfigurationError(PledgeLedgerError):
    """Raised when configuration is invalid or missing."""


class NotificationError(PledgeLedgerError):
    """Raised when a notifier fails to deliver."""
