from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.database import get_db
from app.core.security import decode_access_token

# Missing credentials are not rejected here: the access guard owns the UNAUTHENTICATED decision
http_bearer = HTTPBearer(auto_error=False)

def get_current_caller_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> Optional[str]:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)
