from .gripper_config import ConfigError, GripperConfig, load_gripper_config

__all__ = ["ConfigError", "GripperConfig", "load_gripper_config"]
