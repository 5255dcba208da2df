"""
Split a registration payload into the user-record and artist-profile shapes.

Pure and deterministic: no I/O, and the same payload always produces the
same pair.  The only failure mode is malformed input, reported
as a validation-class ``ProvisioningError`` before anything is written.
"""
from pydantic import ValidationError

from app.errors import validation
from app.schemas import ArtistCreate, ProvisionRequest, UserCreate

PROVISIONING_PATH = "/usuarios"


def _describe(exc: ValidationError) -> str:
    """Condense pydantic's error list into one human-readable line."""
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or "payload"
        parts.append(f"{field}: {err['msg']}")
    return "Invalid or missing fields: " + "; ".join(parts)


def _genre_id(request: ProvisionRequest) -> int | None:
    # The genre object's own id wins over the top-level genre id.
    if request.genre:
        for key in ("idgenero", "id"):
            value = request.genre.get(key)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
    return request.genre_id


def split_user_payload(
    payload: dict, is_artist: bool | None = None
) -> tuple[UserCreate, ArtistCreate | None]:
    """
    Return ``(user, artist)`` for *payload*.

    The role flag is read from the payload itself unless *is_artist* is
    given.  *artist* is None for plain users; any genre fields in the
    payload are then ignored.
    """
    if not isinstance(payload, dict):
        raise validation("Request body must be a JSON object.", PROVISIONING_PATH)
    try:
        request = ProvisionRequest.model_validate(payload)
    except ValidationError as exc:
        raise validation(_describe(exc), PROVISIONING_PATH) from exc

    if is_artist is None:
        is_artist = request.is_artist
    user = UserCreate(
        name=request.name,
        email=request.email,
        is_artist=is_artist,
        password=request.password,
    )
    if not is_artist:
        return user, None
    return user, ArtistCreate(genre_id=_genre_id(request), genre=request.genre)
