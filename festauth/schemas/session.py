"""Session token claims.

A session is either a ``NormalSessionClaims`` or an
``ImpersonationSessionClaims``; the presence of ``originalAdmin`` in the
signed payload is the only thing that tells them apart. Both are parsed
into distinct classes (not one class with an optional field) so every
caller has to decide what to do with each kind.

On the wire the payload keeps the web client's camelCase keys
(``userId``, ``isShadowUser``, ``originalAdmin`` …).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from festauth.core.exceptions import InvalidToken
from festauth.schemas.user import Role

TOKEN_TYPE = "user"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class AdminIdentity(_CamelModel):
    """The admin behind a temporary session."""

    user_id: str
    email: str | None = None
    name: str | None = None
    username: str | None = None


class _SessionClaims(_CamelModel):
    user_id: str
    email: str | None = None
    name: str | None = None
    username: str | None = None
    role: Role
    email_verified: bool = False
    is_shadow_user: bool = False
    type: Literal["user"] = TOKEN_TYPE
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_payload(self) -> dict[str, Any]:
        """Claims to sign; ``iat``/``exp`` are added by the token issuer."""
        return self.model_dump(by_alias=True, exclude={"issued_at", "expires_at"})


class NormalSessionClaims(_SessionClaims):
    pass


class ImpersonationSessionClaims(_SessionClaims):
    original_admin: AdminIdentity


SessionClaims = Union[NormalSessionClaims, ImpersonationSessionClaims]


def parse_session_claims(payload: dict[str, Any]) -> SessionClaims:
    """Turn a verified token payload into the matching claims variant.

    Raises ``InvalidToken`` for payloads of another token family or with
    missing identity fields.
    """
    if payload.get("type") != TOKEN_TYPE:
        raise InvalidToken()
    data = dict(payload)
    if "iat" in data:
        data["issuedAt"] = datetime.fromtimestamp(data["iat"], tz=timezone.utc)
    if "exp" in data:
        data["expiresAt"] = datetime.fromtimestamp(data["exp"], tz=timezone.utc)
    cls = ImpersonationSessionClaims if data.get("originalAdmin") else NormalSessionClaims
    try:
        return cls.model_validate(data)
    except ValidationError:
        raise InvalidToken() from None
