from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from app.auth.jwt import decode_access_token
from app.errors import NotFoundError

bearer = HTTPBearer(auto_error=False)


async def get_optional_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> dict | None:
    """The caller's identity if a bearer token was sent, else None.

    Anonymous use is allowed everywhere; a token that is present but invalid
    is still rejected.
    """
    if creds is None:
        return None

    if creds.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization scheme")

    try:
        payload = decode_access_token(creds.credentials)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid access token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid access token subject")

    return {"id": str(user_id), "email": payload.get("email")}


def ensure_owner(user: dict | None, owner_id: Optional[str], message: str = "Not found") -> None:
    """Reject a signed-in caller touching a record that belongs to someone else.

    Anonymous callers and records without an owner pass. The rejection is a
    404 so record ids of other users are not confirmed.
    """
    if user is not None and owner_id is not None and str(owner_id) != user["id"]:
        raise NotFoundError(message)
