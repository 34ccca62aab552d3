import logging
import secrets

from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

cron_bearer = HTTPBearer(auto_error=False)


async def require_cron_secret(request: Request, credentials: HTTPAuthorizationCredentials = Security(cron_bearer)):
    if credentials is None:
        logger.error("unauthorized cron request: missing bearer token")
        raise HTTPException(status_code=401, detail="Missing bearer token")
    expected = request.app.state.settings.cron_secret
    # An unset secret rejects every caller
    if not expected or not secrets.compare_digest(credentials.credentials, expected):
        logger.error("unauthorized cron request: invalid bearer token")
        raise HTTPException(status_code=403, detail="Invalid cron secret")
    return True
