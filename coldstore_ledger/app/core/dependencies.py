"""
Caller identity dependencies for FastAPI.

Every request carries its own credentials; the decoded identity is passed
explicitly into each service call as a CallerContext. Nothing about the
caller is kept in process-wide state.
"""

from dataclasses import dataclass
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from coldstore_ledger.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from coldstore_ledger.app.core.jwt import decode_access_token
from coldstore_ledger.app.models.enums import AccessType

# HTTP Bearer security scheme
security = HTTPBearer()


@dataclass(frozen=True)
class CallerContext:
    """Authenticated caller: who they are, which cold storage, and what they may do."""
    user_id: int
    cold_storage_id: int
    access_type: AccessType = AccessType.VIEW

    @property
    def can_edit(self) -> bool:
        return self.access_type == AccessType.EDIT


async def get_caller_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CallerContext:
    """
    FastAPI dependency resolving the bearer token into a CallerContext.

    Raises:
        AuthenticationError: 401 if the token is invalid or incomplete
        InsufficientPermissionsError: 403 if the access type is unknown
    """
    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise AuthenticationError("Could not validate credentials")

    try:
        access_type = AccessType(claims.get("access_type", AccessType.VIEW.value))
    except ValueError:
        raise InsufficientPermissionsError("Invalid access type in token")

    return CallerContext(
        user_id=int(claims["user_id"]),
        cold_storage_id=int(claims["cold_storage_id"]),
        access_type=access_type,
    )
