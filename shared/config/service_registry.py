"""
Service registry for grip3r.

Ports, hosts and the message bus URL in one place. Values come from
environment variables with sensible defaults.
"""

import os


class ServiceConfig:
    """Network configuration for grip3r services.

    Port assignments:
        8095 - Gripper node (commands, state, joint-state stream)
        6379 - Redis (message bus)
    """

    GRIPPER_PORT = int(os.getenv("GRIPPER_PORT", "8095"))
    GRIPPER_HOST = os.getenv("GRIPPER_HOST", "0.0.0.0")
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")

    @classmethod
    def url(cls, service: str, path: str = "") -> str:
        """Get the URL for a service.

        Args:
            service: Service name (e.g., 'gripper')
            path: Optional URL path to append (e.g., '/api/gripper/state')

        Returns:
            Full URL like 'http://localhost:8095/api/gripper/state'
        """
        host = os.getenv(f"{service.upper()}_CLIENT_HOST", "localhost")
        port = getattr(cls, f"{service.upper()}_PORT", cls.GRIPPER_PORT)
        return f"http://{host}:{port}{path}"

