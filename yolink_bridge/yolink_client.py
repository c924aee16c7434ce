import logging, time
from typing import Any, Dict, List
import httpx
import pydantic
from .auth import TokenCache
from .errors import AuthError, NetworkError, NotFoundError, ParseError, VendorError
from .models import UNAUTHORIZED_CODE, Device, DeviceList, Envelope
from .settings import Settings

log = logging.getLogger("yolink")

class YoLinkClient:
    """Calls the vendor's JSON-RPC style API with a cached bearer token."""

    def __init__(self, settings: Settings, tokens: TokenCache, http: httpx.AsyncClient):
        self._settings = settings
        self._http = http
        self.tokens = tokens

    async def _call(self, method: str, **params: Any) -> Any:
        try:
            cred = await self.tokens.get_token()
        except AuthError as e:
            self.tokens.invalidate()
            raise AuthError(f"authentication required: {e}") from e

        payload: Dict[str, Any] = {"method": method, "timestamp": int(time.time()), **params}
        headers = {
            "Authorization": f"Bearer {cred.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        log.debug("POST %s method=%s", self._settings.YOLINK_API_URL, method)
        try:
            r = await self._http.post(self._settings.YOLINK_API_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} request failed: {e}") from e

        if r.status_code == httpx.codes.UNAUTHORIZED:
            self.tokens.invalidate()
            raise AuthError(f"{method} rejected the access token (HTTP 401)")

        log.debug("%s response %s: %s", method, r.status_code, r.text)
        try:
            env = Envelope.model_validate(r.json())
        except (ValueError, pydantic.ValidationError) as e:
            raise ParseError(f"failed to parse {method} response: {e}, body: {r.text}") from e

        if not env.ok:
            if env.code == UNAUTHORIZED_CODE:
                self.tokens.invalidate()
                raise AuthError(f"API error: {env.desc} (code: {env.code})")
            raise VendorError(env.desc, env.code)
        return env.data

    async def list_devices(self) -> List[Device]:
        data = await self._call("Home.getDeviceList")
        try:
            return DeviceList.model_validate(data or {}).devices
        except pydantic.ValidationError as e:
            raise ParseError(f"failed to parse device list: {e}") from e

    async def get_device_state(self, device_id: str, device_type: str) -> Any:
        # The state call needs the per-device token, which only the device list carries.
        devices = await self.list_devices()
        device = next((d for d in devices if d.device_id == device_id), None)
        if device is None or not device.token:
            raise NotFoundError("device not found or device token not available")

        return await self._call(f"{device_type}.getState", targetDevice=device_id, token=device.token)

    async def get_home_id(self) -> str:
        data = await self._call("Home.getGeneralInfo")
        home_id = data.get("id") if isinstance(data, dict) else None
        if not home_id:
            raise ParseError("account info response carries no home id")
        return str(home_id)

    async def aclose(self):
        await self._http.aclose()
