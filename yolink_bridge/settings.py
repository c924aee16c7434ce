from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    YOLINK_CLIENT_ID: Optional[str] = None
    YOLINK_CLIENT_SECRET: Optional[str] = None
    YOLINK_API_URL: str = "https://api.yosmart.com/open/yolink/v2/api"
    YOLINK_TOKEN_URL: str = "https://api.yosmart.com/open/yolink/token"
    TOKEN_SAFETY_FRACTION: float = 0.9
    HTTP_TIMEOUT: float = 15

    MQTT_HOST: str = "api.yosmart.com"
    MQTT_PORT: int = 8003
    MQTT_TOPIC_PREFIX: str = "yl-home"
    MQTT_TOPIC_EVENT: str = "report"
    MQTT_RECONNECT_DELAY: float = 2
    TELEMETRY_ENABLED: bool = True

    FEED_SIZE: int = 100
    SESSION_QUEUE_SIZE: int = 100

    HOST: str = "0.0.0.0"
    PORT: int = 8080
    STATIC_DIR: str = "../frontend/public"
    LOG_LEVEL: str = "INFO"

settings = Settings()
