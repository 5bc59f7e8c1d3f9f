"""
Gripper Node Server: command and telemetry service for a parallel gripper.

Standalone FastAPI app in front of one GripperNode. It provides:
  - One asynchronous endpoint per command (homing, stop, move, grasp,
    gripper_action), each answering with exactly one terminal result
  - Command history lookup
  - Cached device state and latest joint-state sample
  - Joint-state streaming via WebSocket at the publish rate
  - Joint states and command results on the Redis message bus

Port: 8095 (configurable via GRIPPER_PORT env var)

Usage:
    python -m services.gripper_node.server --simulate --joint-names left_finger,right_finger
    python -m services.gripper_node.server --device-address 192.168.1.20:1338 --config gripper.json
"""

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, List, Optional, Set

from dotenv import load_dotenv

load_dotenv()

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure project root is in sys.path
_project_root = str(Path(__file__).resolve().parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from gripper.config import ConfigError, load_gripper_config
from gripper.control import (
    Command,
    CommandRecord,
    GenericCommand,
    GenericCommandResult,
    Grasp,
    Home,
    Move,
    Stop,
)
from gripper.interface import create_device
from gripper.node import GripperNode
from gripper.telemetry import JointTelemetrySample
from shared.bus import EventPublisher, SyncEventPublisher, Topics
from shared.config.service_registry import ServiceConfig
from shared.messages.gripper import (
    CommandResponse,
    GraspRequest,
    GripperActionRequest,
    GripperActionResponse,
    GripperStateMessage,
    MoveRequest,
)
from shared.utils.logging_config import setup_logging

logger = logging.getLogger("grip3r.gripper_node")

# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------

node: Optional[GripperNode] = None

# Message bus publishers (optional, connect to Redis when redis_url is set)
_publisher: Optional[EventPublisher] = None
_telemetry_bus: Optional[SyncEventPublisher] = None

# Tasks publishing results of commands submitted with wait=false
_background: Set[asyncio.Task] = set()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    global node, _publisher, _telemetry_bus

    if node is None:
        # Started directly by uvicorn: configuration comes from file/env only
        config = load_gripper_config()
        node = GripperNode(config, create_device(config.device_address, config.device_timeout))
    if not node.is_running:
        await asyncio.to_thread(node.start)

    redis_url = node.config.redis_url
    if redis_url:
        _publisher = EventPublisher(redis_url)
        await _publisher.connect()
        _telemetry_bus = SyncEventPublisher(redis_url)
        if await asyncio.to_thread(_telemetry_bus.connect):
            node.add_sink(_publish_joint_states)
    else:
        logger.info("No redis_url configured (operating standalone)")

    logger.info("Gripper node ready")

    yield

    logger.info("Gripper node shutting down")
    await asyncio.to_thread(node.stop)
    if _publisher:
        await _publisher.close()
        _publisher = None
    if _telemetry_bus:
        _telemetry_bus.close()
        _telemetry_bus = None


def _publish_joint_states(sample: JointTelemetrySample) -> None:
    if _telemetry_bus is not None:
        _telemetry_bus.publish(Topics.GRIPPER_JOINT_STATES, sample.to_message())


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="grip3r Gripper Node",
    description="Command and telemetry service for a parallel gripper",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_NOT_READY = {"error": "Gripper node not initialized"}

# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    """Health check endpoint."""
    if node is None:
        return JSONResponse({"status": "unavailable", "service": "gripper_node"}, status_code=503)
    return {
        "status": "healthy" if node.is_running else "unavailable",
        "service": "gripper_node",
        **node.health(),
        "bus_connected": _publisher.is_connected if _publisher else False,
    }


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------


def _to_response(record: CommandRecord) -> CommandResponse:
    data = record.to_dict()
    if isinstance(record.command, GenericCommand):
        result = record.result
        if isinstance(result, GenericCommandResult):
            data.update(
                position=result.position,
                effort=result.effort,
                stalled=result.stalled,
                reached_goal=result.reached_goal,
            )
        return GripperActionResponse(**data)
    return CommandResponse(**data)


async def _publish_result(response: CommandResponse) -> None:
    if _publisher and _publisher.is_connected:
        await _publisher.publish(Topics.GRIPPER_COMMAND_RESULT, response)


async def _await_and_publish(future) -> None:
    record = await asyncio.wrap_future(future)
    await _publish_result(_to_response(record))


async def _dispatch(command: Command, wait: bool):
    if node is None or not node.is_running:
        return JSONResponse(_NOT_READY, status_code=503)
    try:
        record, future = node.submit(command)
    except RuntimeError as e:
        return JSONResponse({"error": str(e)}, status_code=503)

    if not wait:
        task = asyncio.create_task(_await_and_publish(future))
        _background.add(task)
        task.add_done_callback(_background.discard)
        return JSONResponse(_to_response(record).model_dump(), status_code=202)

    final = await asyncio.wrap_future(future)
    response = _to_response(final)
    await _publish_result(response)
    return response


@app.post("/api/gripper/homing")
async def homing(wait: bool = True):
    """Run the homing routine."""
    return await _dispatch(Home(), wait)


@app.post("/api/gripper/stop")
async def stop(wait: bool = True):
    """Stop any running motion."""
    return await _dispatch(Stop(), wait)


@app.post("/api/gripper/move")
async def move(req: MoveRequest, wait: bool = True):
    """Move the fingers to a width."""
    return await _dispatch(Move(width=req.width, speed=req.speed), wait)


@app.post("/api/gripper/grasp")
async def grasp(req: GraspRequest, wait: bool = True):
    """Grasp an object of the given width."""
    command = Grasp(
        width=req.width,
        speed=req.speed,
        force=req.force,
        epsilon_inner=req.epsilon_inner,
        epsilon_outer=req.epsilon_outer,
    )
    return await _dispatch(command, wait)


@app.post("/api/gripper/gripper_action")
async def gripper_action(req: GripperActionRequest, wait: bool = True):
    """Open/close to a per-finger position, grasping when effort is given."""
    return await _dispatch(GenericCommand(position=req.position, max_effort=req.max_effort), wait)


@app.get("/api/gripper/commands")
async def list_commands(n: int = 50):
    """Recent commands, oldest first."""
    if node is None:
        return JSONResponse(_NOT_READY, status_code=503)
    return {"commands": [_to_response(r).model_dump() for r in node.dispatcher.recent(n)]}


@app.get("/api/gripper/commands/{command_id}")
async def get_command(command_id: str):
    if node is None:
        return JSONResponse(_NOT_READY, status_code=503)
    record = node.dispatcher.get(command_id)
    if record is None:
        return JSONResponse({"error": f"Unknown command: {command_id}"}, status_code=404)
    return _to_response(record)


# ---------------------------------------------------------------------------
# State API
# ---------------------------------------------------------------------------


@app.get("/api/gripper/state")
async def get_state():
    """Last polled gripper state."""
    if node is None:
        return JSONResponse(_NOT_READY, status_code=503)
    state = node.latest_state()
    if state is None:
        return JSONResponse({"error": "No state available"}, status_code=503)
    return GripperStateMessage(
        width=state.width,
        max_width=state.max_width,
        is_grasped=state.is_grasped,
        temperature=state.temperature,
        timestamp=state.timestamp,
    )


@app.get("/api/joint_states")
async def get_joint_states():
    """Latest published joint-state sample."""
    if node is None:
        return JSONResponse(_NOT_READY, status_code=503)
    sample = node.publisher.latest_sample
    if sample is None:
        return JSONResponse({"error": "No joint states published yet"}, status_code=503)
    return sample.to_message()


# ---------------------------------------------------------------------------
# WebSocket joint-state stream
# ---------------------------------------------------------------------------


@app.websocket("/ws/joint_states")
async def ws_joint_states(websocket: WebSocket):
    """Joint-state stream at the publish rate. Only new samples are sent."""
    await websocket.accept()
    last_sent: Optional[JointTelemetrySample] = None
    try:
        while True:
            if node is None:
                await asyncio.sleep(0.5)
                continue

            sample = node.publisher.latest_sample
            if sample is not None and sample is not last_sent:
                await websocket.send_json(sample.to_message().model_dump())
                last_sent = sample

            await asyncio.sleep(node.publisher.dt)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("WebSocket error: %s", e)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _split_names(value: str) -> List[str]:
    return value.split(",") if value else []


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="grip3r Gripper Node")
    parser.add_argument("--config", default=None, help="JSON config file (default: $GRIPPER_CONFIG)")
    parser.add_argument("--device-address", default=None, help="Gripper controller host[:port], or 'sim'")
    parser.add_argument("--simulate", action="store_true", help="Run with a simulated gripper")
    parser.add_argument(
        "--joint-names", type=_split_names, default=None, help="Comma-separated finger joint names (exactly 2)"
    )
    parser.add_argument("--publish-rate", type=float, default=None, help="Joint state publish rate in Hz")
    parser.add_argument("--poll-rate", type=float, default=None, help="Device poll rate in Hz")
    parser.add_argument("--redis-url", default=None, help="Message bus URL (disabled when unset)")
    parser.add_argument("--host", default=None, help="Bind host (default: from service registry)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: from service registry)")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    parser.add_argument("--log-dir", type=str, default=None, help="Custom log directory")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the gripper node. Returns the process exit code."""
    global node

    args = build_parser().parse_args(argv)
    setup_logging(server_name="gripper_node", debug=args.debug, log_dir=args.log_dir)

    overrides: dict[str, Any] = {
        "device_address": "sim" if args.simulate else args.device_address,
        "joint_names": args.joint_names,
        "publish_rate": args.publish_rate,
        "poll_rate": args.poll_rate,
        "redis_url": args.redis_url,
    }
    try:
        config = load_gripper_config(args.config, overrides)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    node = GripperNode(config, create_device(config.device_address, timeout=config.device_timeout))
    try:
        node.start()
    except ConnectionError as e:
        logger.error("%s", e)
        node.stop()
        node = None
        return 1

    host = args.host or ServiceConfig.GRIPPER_HOST
    port = args.port or ServiceConfig.GRIPPER_PORT
    logger.info("Starting Gripper Node on %s:%d (device=%s)", host, port, config.device_address)
    try:
        uvicorn.run(app, host=host, port=port, log_config=None)
    finally:
        node.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
