"""
Normalise heterogeneous failures into ``ProvisioningError``.

Classification, first match wins:

1. already a ``ProvisioningError``      -> returned unchanged
2. tagged uniqueness errors             -> conflict
   (``StoreConflictError`` from the database layer,
   ``IdentityConflictError`` from the identity provider)
3. untagged error whose message reads like a uniqueness violation
   ("duplicate key", "already exists", "already in use", "unique constraint")
                                        -> conflict
4. anything else                        -> internal

Raw driver / provider text is logged, not returned; callers only see the
human message chosen here.
"""
import logging

from app.database import StoreConflictError
from app.errors import ProvisioningError, Severity
from app.identity import IdentityConflictError

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "A user with this name or email already exists."
INTERNAL_MESSAGE = "Error creating the user in the identity provider or the database."

_UNIQUENESS_MARKERS = ("duplicate key", "already exists", "already in use", "unique constraint")


def _looks_like_uniqueness_violation(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _UNIQUENESS_MARKERS)


def classify(exc: BaseException) -> Severity:
    if isinstance(exc, ProvisioningError):
        return exc.severity
    if isinstance(exc, (StoreConflictError, IdentityConflictError)):
        return Severity.CONFLICT
    if _looks_like_uniqueness_violation(exc):
        return Severity.CONFLICT
    return Severity.INTERNAL


def translate_error(
    exc: BaseException,
    path: str,
    conflict_message: str = CONFLICT_MESSAGE,
    internal_message: str = INTERNAL_MESSAGE,
) -> ProvisioningError:
    if isinstance(exc, ProvisioningError):
        return exc

    severity = classify(exc)
    if severity is Severity.CONFLICT:
        logger.info("Conflict on %s: %s", path, exc)
        return ProvisioningError(severity, conflict_message, path)

    logger.error("Internal error on %s: %r", path, exc)
    return ProvisioningError(Severity.INTERNAL, internal_message, path)
