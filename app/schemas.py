from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator


# --- Provisioning input ---

class ProvisionRequest(BaseModel):
    """Raw registration payload, before it is split into user / artist shapes."""

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: SecretStr = Field(min_length=1)
    is_artist: bool = Field(
        False, validation_alias=AliasChoices("is_artist", "isArtist", "esartista")
    )
    genre_id: int | None = Field(
        None, validation_alias=AliasChoices("genre_id", "genreId", "idgenero")
    )
    genre: dict | None = Field(None, validation_alias=AliasChoices("genre", "genero"))

    model_config = ConfigDict(extra="ignore")

    @field_validator("is_artist", mode="before")
    @classmethod
    def _null_flag_is_false(cls, value):
        # An explicit null role flag means "not an artist".
        return False if value is None else value


class UserCreate(BaseModel):
    name: str
    email: str
    is_artist: bool = False
    # Only handed to the identity provider; never written to the database.
    password: SecretStr


class ArtistCreate(BaseModel):
    genre_id: int | None = None
    genre: dict | None = None


# --- Responses ---

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    is_artist: bool
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class ArtistResponse(UserResponse):
    genre_id: int | None = None
    genre: dict | None = None


class ErrorResponse(BaseModel):
    severity: str
    code: int
    message: str
    path: str
