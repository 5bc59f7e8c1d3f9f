"""Message bus client library for publishing gripper telemetry and results."""

from shared.bus.publisher import EventPublisher, SyncEventPublisher
from shared.bus.topics import Topics
