"""Topic name constants for the message bus.

Publishers and subscribers should use these constants rather than
hardcoded strings.
"""


class Topics:
    """Message bus topic names."""

    # Finger joint states (published by the gripper node at publish_rate)
    GRIPPER_JOINT_STATES = "gripper.joint_states"

    # Terminal outcome of every command
    GRIPPER_COMMAND_RESULT = "gripper.command_result"
