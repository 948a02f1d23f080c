"""
Request-scoped dependencies: the marketplace, the caller, the expected version.
"""
import re
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hirelink.core.auth import Principal
from hirelink.core.errors import AuthenticationError, ValidationError
from hirelink.service import Marketplace

security = HTTPBearer(auto_error=False)

_ETAG = re.compile(r'^(?:W/)?"?(\d+)"?$')


def get_marketplace(request: Request) -> Marketplace:
    return request.app.state.marketplace


async def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    marketplace: Marketplace = Depends(get_marketplace),
) -> Principal:
    """
    Resolve the bearer token to the caller.

    The role comes from the Directory record, never from the token.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return await marketplace.authenticate(credentials.credentials)


def expected_version(if_match: Optional[str] = Header(None)) -> Optional[int]:
    """Parse ``If-Match: "<version>"`` into the version the caller last saw."""
    if if_match is None or if_match.strip() == "*":
        return None
    match = _ETAG.match(if_match.strip())
    if not match:
        raise ValidationError("If-Match", "must be a quoted entity version such as \"3\"")
    return int(match.group(1))


def etag(version: int) -> str:
    return f'"{version}"'
