import asyncio, logging, time
from typing import Any, Dict, Optional, Union
import aiomqtt
import orjson
from .errors import BridgeError
from .models import StateUpdate
from .settings import Settings
from .state import DeviceStateCache, UpdateFeed
from .yolink_client import YoLinkClient

log = logging.getLogger("telemetry")

MAX_STARTUP_DELAY = 60

def extract_device_id(topic: str) -> Optional[str]:
    # yl-home/{homeId}/{deviceId}/report
    parts = topic.split("/")
    if len(parts) != 4 or not parts[2]:
        return None
    return parts[2]

class TelemetrySubscriber:
    """Feeds broker reports into the device state cache and the update feed."""

    def __init__(self, settings: Settings, client: YoLinkClient,
                 cache: DeviceStateCache, feed: UpdateFeed):
        self._settings = settings
        self._client = client
        self.cache = cache
        self.feed = feed
        self.home_id: Optional[str] = None

    def topic_filter(self, home_id: str) -> str:
        s = self._settings
        return f"{s.MQTT_TOPIC_PREFIX}/{home_id}/+/{s.MQTT_TOPIC_EVENT}"

    def mqtt_params(self, access_token: str) -> Dict[str, Any]:
        return {
            "hostname": self._settings.MQTT_HOST,
            "port": self._settings.MQTT_PORT,
            "identifier": f"yolink-bridge-{int(time.time())}",
            "username": access_token,
            "password": "",
            "clean_session": True,
        }

    def handle_message(self, topic: str, payload: Union[bytes, str]) -> Optional[StateUpdate]:
        log.debug("Message on %s: %r", topic, payload)
        device_id = extract_device_id(topic)
        if device_id is None:
            log.warning("Could not extract device ID from topic: %s", topic)
            return None
        try:
            state = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            log.warning("Could not parse state payload for device %s: %s", device_id, e)
            return None

        self.cache.set(device_id, state)
        update = StateUpdate(device_id, state)
        self.feed.publish(update)
        return update

    async def _resolve_home_id(self) -> str:
        delay = self._settings.MQTT_RECONNECT_DELAY
        while True:
            try:
                await self._client.tokens.get_token()
                home_id = await self._client.get_home_id()
                log.info("Using home ID: %s", home_id)
                return home_id
            except BridgeError as e:
                log.warning("Telemetry startup failed: %s; retrying in %ss", e, delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, MAX_STARTUP_DELAY)

    async def run(self):
        self.home_id = await self._resolve_home_id()
        topic = self.topic_filter(self.home_id)
        while True:
            try:
                cred = await self._client.tokens.get_token()
                params = self.mqtt_params(cred.access_token)
                log.info("Connecting to MQTT broker at %s:%s as %s",
                         params["hostname"], params["port"], params["identifier"])
                async with aiomqtt.Client(**params) as mqtt:
                    await mqtt.subscribe(topic, qos=0)
                    log.info("Subscribed to %s", topic)
                    async for message in mqtt.messages:
                        self.handle_message(str(message.topic), message.payload)
            except aiomqtt.MqttError as e:
                log.warning("Connection to MQTT broker lost: %s", e)
            except BridgeError as e:
                log.warning("Could not obtain broker credential: %s", e)
            await asyncio.sleep(self._settings.MQTT_RECONNECT_DELAY)
