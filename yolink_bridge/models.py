from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Vendor success code for the {code, desc, data} envelope
SUCCESS_CODE = "000000"
UNAUTHORIZED_CODE = "401"

class TokenResponse(BaseModel):
    access_token: str = ""
    token_type: str = ""
    expires_in: int = 0
    code: Union[int, str, None] = None
    message: Optional[str] = None

    def failed(self) -> bool:
        return self.code not in (None, 0, "0", SUCCESS_CODE)

class Envelope(BaseModel):
    code: str
    desc: str = ""
    method: Optional[str] = None
    time: Optional[int] = None
    msgid: Optional[int] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE

class Device(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    device_udid: str = Field("", alias="deviceUDID")
    name: str = ""
    token: str = ""
    type: str = ""
    parent_device_id: Any = Field(None, alias="parentDeviceId")
    model_name: str = Field("", alias="modelName")
    service_zone: Optional[str] = Field(None, alias="serviceZone")

    @field_validator("device_udid", "name", "token", "type", "model_name", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

class DeviceList(BaseModel):
    devices: List[Device] = []

@dataclass(frozen=True)
class StateUpdate:
    """One telemetry report in transit to live sessions."""

    device_id: str
    state: Any

    def as_dict(self) -> Dict[str, Any]:
        return {"deviceId": self.device_id, "state": self.state}
