from __future__ import annotations

from typing import Annotated

from answer_engine.core.firebase import verify_id_token
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

# auto_error=False so a missing header maps to 401 rather than FastAPI's default 403.
security_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
  return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers={"WWW-Authenticate": "Bearer"})


async def get_current_identity(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> str:
  """Verify the Firebase ID token and return the caller's stable uid."""
  if token is None or not token.credentials:
    raise _unauthorized("Missing authentication credentials")

  # Token verification does blocking key fetches; keep it off the event loop.
  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    raise _unauthorized("Invalid authentication credentials")

  firebase_uid = decoded_claims.get("uid")
  if not firebase_uid:
    raise _unauthorized("Invalid token claims")

  return str(firebase_uid)
