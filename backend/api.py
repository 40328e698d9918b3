"""
Fan Control API Endpoints

Read-only inspection of the control loop, plus a manual fan speed command.
"""

import os
import sys
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.fancontrol.ceiling_fan import CeilingFanController
from core.fancontrol.control_service import FanControlService
from core.fancontrol.history import history_tracker

router = APIRouter()

# Control service (set by app.py during startup)
control_service: FanControlService | None = None


class SetFanSpeedRequest(BaseModel):
    """Request body for setting a ceiling fan speed."""
    speed: int = Field(ge=0)


def _require_service() -> FanControlService:
    if control_service is None:
        raise HTTPException(status_code=503, detail="Fan control service not running")
    return control_service


def _require_fan(name: str) -> CeilingFanController:
    actuator = _require_service().get_actuator(name)
    if not isinstance(actuator, CeilingFanController):
        raise HTTPException(status_code=404, detail=f"Ceiling fan {name} not found")
    return actuator


@router.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "fancontrol",
        "version": "0.1.0",
        "loop_running": control_service is not None and control_service.running,
    }


@router.get("/api/status")
async def get_status():
    """Latest thermostat reading and every actuator's state."""
    return _require_service().status()


@router.get("/api/readings")
async def get_readings(hours: int = Query(1, ge=1, le=24)):
    """Thermostat snapshots recorded after successful polls."""
    readings = history_tracker.get_snapshots(hours=hours)
    return {"hours": hours, "count": len(readings), "readings": readings}


@router.get("/api/events")
async def get_events(hours: int = Query(24, ge=1, le=24), device: str | None = None):
    """Commands sent to actuators."""
    events = history_tracker.get_control_events(device=device, hours=hours)
    return {"hours": hours, "count": len(events), "events": events}


@router.get("/api/debug")
def get_debug():
    """One raw read per actuator (blocking device I/O, so not async)."""
    results = _require_service().debug()
    return {"results": [asdict(r) for r in results]}


@router.get("/api/fans/{name}/speed")
def get_fan_speed(name: str):
    """Query a ceiling fan's current speed."""
    fan = _require_fan(name)
    speed = fan.get_fan_speed()
    if speed is None:
        raise HTTPException(status_code=502, detail=f"Could not read speed from {name}")
    return {"name": name, "speed": speed}


@router.post("/api/fans/{name}/speed")
def set_fan_speed(name: str, request: SetFanSpeedRequest):
    """Manually command a fan speed.

    A controller still waiting out its debounce delay will apply its own
    speed once the delay elapses; otherwise this holds until the next
    heating transition.
    """
    fan = _require_fan(name)
    logger.info(f"Manual speed request for {name}: {request.speed}")
    if not fan.set_fan_speed(request.speed):
        raise HTTPException(status_code=502, detail=f"{name} rejected speed {request.speed}")
    return {"name": name, "speed": request.speed, "success": True}


@router.post("/api/fans/{name}/reboot")
def reboot_fan(name: str):
    """Reboot a ceiling fan. Blocks until the request times out."""
    fan = _require_fan(name)
    fan.reboot()
    return {"name": name, "rebooting": True}
