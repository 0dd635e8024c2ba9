"""Error kinds raised by the capsule combination engine and its workflow."""


class CapsuleError(Exception):
    pass


class PreconditionNotMet(CapsuleError):
    """Fewer than two usable items; surfaced verbatim and never retried."""


class OwnershipViolation(CapsuleError):
    """The capsule or item does not belong to the caller; surfaced as not-found."""


class ExternalResponseInvalid(CapsuleError):
    """The AI stylist payload is missing, not text, or structurally invalid."""


class PersistenceFailure(CapsuleError):
    """The store could not complete a write; the transaction was rolled back."""


__all__ = [
    "CapsuleError",
    "PreconditionNotMet",
    "OwnershipViolation",
    "ExternalResponseInvalid",
    "PersistenceFailure",
]
