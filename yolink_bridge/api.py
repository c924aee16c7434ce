from typing import Optional
from fastapi import APIRouter, Request, WebSocket
from .errors import ValidationError

router = APIRouter()

@router.get("/api/hello")
def hello():
    return {"message": "Hello from the YoLink bridge!"}

@router.get("/api/devices")
async def list_devices(request: Request):
    devices = await request.app.state.client.list_devices()
    return [d.model_dump(by_alias=True) for d in devices]

@router.get("/api/devices/state")
async def device_state(request: Request, deviceId: Optional[str] = None, deviceType: Optional[str] = None):
    if not deviceId or not deviceType:
        raise ValidationError("Device ID and type are required")

    cached = request.app.state.cache.get(deviceId)
    if cached is not None:
        return cached
    return await request.app.state.client.get_device_state(deviceId, deviceType)

@router.websocket("/ws")
async def updates(websocket: WebSocket):
    await websocket.app.state.broadcaster.serve(websocket)
