from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from bulkshorts.core.config import settings
from bulkshorts.core.users import normalize_user_id

http_bearer = HTTPBearer(auto_error=False)

class Principal(BaseModel):
    user_id: str

def _decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], audience=settings.REQUIRED_AUDIENCE)
        return payload
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")

async def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    x_user_id: str | None = Header(default=None),
) -> Principal:
    # Sign-in happens upstream; a bearer token only tells us whose partition to use.
    if creds is not None:
        data = _decode_token(creds.credentials)
        return Principal(user_id=normalize_user_id(data.get("sub") or data.get("user_id")))
    if x_user_id is not None and settings.ENV != "prod":
        return Principal(user_id=normalize_user_id(x_user_id))
    return Principal(user_id=settings.DEFAULT_USER_ID)
