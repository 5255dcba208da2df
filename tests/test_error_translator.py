from sqlalchemy.exc import IntegrityError

from app.database import StoreConflictError, StoreError
from app.errors import ProvisioningError, Severity, conflict, not_found
from app.identity import IdentityConflictError, IdentityProviderError, IdentityProviderUnavailable
from app.services.error_translator import CONFLICT_MESSAGE, INTERNAL_MESSAGE, translate_error


def test_provisioning_error_passes_through_unchanged():
    original = not_found("User not found.", "/usuarios/3")
    assert translate_error(original, "/elsewhere") is original


def test_store_conflict_is_conflict():
    err = translate_error(StoreConflictError("UNIQUE constraint failed: users.email"), "/usuarios")
    assert err.severity is Severity.CONFLICT
    assert err.status_code == 409
    assert err.path == "/usuarios"
    assert err.message == CONFLICT_MESSAGE


def test_identity_conflict_is_conflict():
    err = translate_error(IdentityConflictError("taken", code="DUPLICATE_LOCAL_ID"), "/usuarios")
    assert err.severity is Severity.CONFLICT
    assert err.status_code == 409


def test_untagged_uniqueness_message_is_conflict():
    for text in ("duplicate key value", "uid already exists", "email already in use"):
        assert translate_error(RuntimeError(text), "/usuarios").severity is Severity.CONFLICT


def test_raw_integrity_error_with_unique_message_is_conflict():
    exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.name"))
    assert translate_error(exc, "/usuarios").severity is Severity.CONFLICT


def test_everything_else_is_internal():
    for exc in (
        StoreError("NOT NULL constraint failed"),
        IdentityProviderUnavailable("network error"),
        IdentityProviderError("WEAK_PASSWORD", code="WEAK_PASSWORD"),
        ValueError("boom"),
    ):
        err = translate_error(exc, "/usuarios")
        assert err.severity is Severity.INTERNAL
        assert err.status_code == 500
        assert err.message == INTERNAL_MESSAGE


def test_custom_messages():
    err = translate_error(StoreConflictError("dup"), "/cesta", conflict_message="Already in the cart.")
    assert err.message == "Already in the cart."
    assert err.path == "/cesta"


def test_uniqueness_guard_errors_surface_like_store_conflicts():
    guard = conflict("Already in the cart.", "/cesta")
    store = translate_error(StoreConflictError("dup"), "/cesta")
    assert guard.severity is store.severity
    assert guard.status_code == store.status_code == 409


def test_to_dict_shape():
    err = ProvisioningError(Severity.VALIDATION, "Missing email.", "/usuarios")
    assert err.to_dict() == {
        "severity": "validation",
        "code": 400,
        "message": "Missing email.",
        "path": "/usuarios",
    }
