import asyncio, logging, time
from dataclasses import dataclass
from typing import Callable, Optional
import httpx
import pydantic
from .errors import AuthError, ConfigError
from .models import TokenResponse
from .settings import Settings

log = logging.getLogger("auth")

@dataclass(frozen=True)
class Credential:
    access_token: str
    expires_at: float  # on the cache's clock

class TokenCache:
    """Caches the client-credentials bearer token until its safety-adjusted expiry."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient,
                 clock: Callable[[], float] = time.monotonic):
        self._settings = settings
        self._http = http
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._refresh_lock = asyncio.Lock()

    def current(self) -> Optional[Credential]:
        cred = self._credential
        if cred is None or self._clock() >= cred.expires_at:
            return None
        return cred

    def invalidate(self):
        if self._credential is not None:
            log.info("Cached access token invalidated")
        self._credential = None

    async def get_token(self) -> Credential:
        cred = self.current()
        if cred:
            return cred
        async with self._refresh_lock:
            # another caller may have refreshed while we waited
            cred = self.current()
            if cred:
                return cred
            self._credential = None
            cred = await self._exchange()
            self._credential = cred
            return cred

    async def _exchange(self) -> Credential:
        client_id = self._settings.YOLINK_CLIENT_ID
        client_secret = self._settings.YOLINK_CLIENT_SECRET
        if not client_id or not client_secret:
            raise ConfigError("YOLINK_CLIENT_ID and YOLINK_CLIENT_SECRET environment variables must be set")

        params = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        log.debug("Requesting access token from %s", self._settings.YOLINK_TOKEN_URL)
        try:
            r = await self._http.post(self._settings.YOLINK_TOKEN_URL, params=params,
                                      headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise AuthError(f"failed to make token request: {e}") from e

        try:
            body = TokenResponse.model_validate(r.json())
        except (ValueError, pydantic.ValidationError) as e:
            raise AuthError(f"failed to parse auth response (status {r.status_code}): {e}") from e

        if body.failed():
            raise AuthError(f"authentication failed: {body.message} (code: {body.code})")
        if not body.access_token:
            raise AuthError("authentication failed: no access token received")

        lifetime = body.expires_in * self._settings.TOKEN_SAFETY_FRACTION
        cred = Credential(body.access_token, self._clock() + lifetime)
        log.info("New access token obtained, valid for %.0fs", lifetime)
        return cred
