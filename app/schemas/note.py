"""Note request/response schemas."""

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

MAX_MESSAGE_LENGTH = 140_000

ONE_MINUTE_MS = 60_000
ALLOWED_EXPIRIES_MS = (
    ONE_MINUTE_MS,
    3 * ONE_MINUTE_MS,
    5 * ONE_MINUTE_MS,
    10 * ONE_MINUTE_MS,
    60 * ONE_MINUTE_MS,
    24 * 60 * ONE_MINUTE_MS,
    7 * 24 * 60 * ONE_MINUTE_MS,
)
DEFAULT_EXPIRY_MS = 24 * 60 * ONE_MINUTE_MS


class NoteCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str = Field(
        ..., min_length=1, max_length=MAX_MESSAGE_LENGTH, pattern=r"^[A-Za-z0-9+/=_-]+$"
    )  # base64 ciphertext
    iv: str = Field(..., pattern=r"^[A-Za-z0-9_-]{16,24}$")
    salt: str | None = Field(None, pattern=r"^[A-Za-z0-9_-]{16,64}$")
    expiry: StrictInt = DEFAULT_EXPIRY_MS  # milliseconds

    @field_validator("expiry")
    @classmethod
    def _expiry_allowed(cls, value: int) -> int:
        # Closed set: anything else is rejected, never clamped
        if value not in ALLOWED_EXPIRIES_MS:
            raise ValueError(f"expiry must be one of {list(ALLOWED_EXPIRIES_MS)}")
        return value


class NoteCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    url: str
    delete_token: str = Field(alias="deleteToken")


class NoteData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    message: str
    iv: str
    salt: str | None
    delete_token: str = Field(alias="deleteToken")


class DeleteResult(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    status_code: int = Field(alias="statusCode")
    details: list[dict] | None = None
