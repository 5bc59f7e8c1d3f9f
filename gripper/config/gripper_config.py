"""
Gripper node configuration.

Values are layered, lowest precedence first:

    defaults -> JSON file -> GRIPPER_* environment -> explicit overrides

The JSON file comes from ``path`` or the ``GRIPPER_CONFIG`` environment
variable. Environment keys are the option names upper-cased with a
``GRIPPER_`` prefix (``GRIPPER_DEVICE_ADDRESS``, ``GRIPPER_PUBLISH_RATE``);
``GRIPPER_JOINT_NAMES`` is comma-separated. Anything invalid raises
``ConfigError`` before the node is built.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gripper.control.handlers import CommandSettings
from gripper.interface import is_simulated_address
from gripper.interface.gripper_connection import parse_device_address

logger = logging.getLogger(__name__)

ENV_PREFIX = "GRIPPER_"
CONFIG_PATH_ENV = "GRIPPER_CONFIG"


class ConfigError(ValueError):
    """Invalid or missing gripper node configuration."""


class GripperConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    device_address: str = Field(min_length=1, description="'sim' or host[:port] of the controller")
    joint_names: list[str] = Field(
        min_length=2, max_length=2, description="Names of the two finger joints"
    )

    width_tolerance: float = Field(default=0.01, gt=0.0, description="Move success band in m")
    default_speed: float = Field(default=0.1, gt=0.0, description="Gripper action speed in m/s")
    publish_rate: float = Field(default=30.0, gt=0.0, description="Joint state publish rate in Hz")
    poll_rate: float = Field(default=10.0, gt=0.0, description="Device poll rate in Hz")

    min_grasp_force: float = Field(default=1e-4, ge=0.0)
    same_position_threshold: float = Field(default=1e-4, ge=0.0)
    grasp_epsilon_inner: float = Field(default=0.005, ge=0.0)
    grasp_epsilon_outer: float = Field(default=0.005, ge=0.0)

    command_workers: int = Field(default=4, ge=1)
    stop_workers: int = Field(default=2, ge=1)
    device_timeout: float = Field(default=10.0, gt=0.0, description="Socket timeout in s")
    redis_url: Optional[str] = Field(default=None, description="Message bus; disabled when unset")

    @field_validator("device_address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        value = value.strip()
        if not is_simulated_address(value):
            parse_device_address(value)
        return value

    @field_validator("joint_names")
    @classmethod
    def _check_joint_names(cls, value: list[str]) -> list[str]:
        names = [n.strip() for n in value]
        if any(not n for n in names):
            raise ValueError("joint names must be non-empty")
        return names

    def command_settings(self) -> CommandSettings:
        return CommandSettings(
            width_tolerance=self.width_tolerance,
            default_speed=self.default_speed,
            min_grasp_force=self.min_grasp_force,
            same_position_threshold=self.same_position_threshold,
            grasp_epsilon_inner=self.grasp_epsilon_inner,
            grasp_epsilon_outer=self.grasp_epsilon_outer,
        )


def _read_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def _read_env(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name in GripperConfig.model_fields:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is None or raw == "":
            continue
        if name == "joint_names":
            values[name] = raw.split(",")
        else:
            values[name] = raw
    return values


def _format_errors(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or "config"
        parts.append(f"{loc}: {e['msg']}")
    return "; ".join(parts)


def load_gripper_config(
    path: str | Path | None = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> GripperConfig:
    """Build a validated GripperConfig from file, environment and overrides.

    Override values of None are ignored so unset CLI flags can be passed
    straight through.
    """
    env = os.environ if env is None else env

    values: dict[str, Any] = {}
    file_path = path or env.get(CONFIG_PATH_ENV)
    if file_path:
        values.update(_read_file(Path(file_path)))
        logger.debug("Loaded gripper config file %s", file_path)
    values.update(_read_env(env))
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return GripperConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid gripper configuration: {_format_errors(e)}") from None
