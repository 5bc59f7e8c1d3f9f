"""
Gripper Controller Connection Interface

TCP client for a parallel-gripper controller. Handles framing, per-operation
channels and mapping of socket/controller errors to DeviceError.

Wire format (little-endian), both directions:
  1 uint8   message id
  1 uint16  payload length
  payload

Responses echo the request id. The first payload byte is a status
(0 = ok, 1 = error); an error is followed by a UTF-8 message.
"""

import logging
import socket
import struct
import threading
from typing import Optional, Tuple

from .device import DeviceError, DeviceState, GripperDevice, MotionGate

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1338

HEADER_FORMAT = "<BH"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

# width, max_width, is_grasped, temperature
STATE_FORMAT = "<dd?d"
STATE_SIZE = struct.calcsize(STATE_FORMAT)

MSG_HOMING = 0x01
MSG_MOVE = 0x02
MSG_GRASP = 0x03
MSG_STOP = 0x04
MSG_READ_STATE = 0x05

STATUS_OK = 0
STATUS_ERROR = 1


def parse_device_address(address: str) -> Tuple[str, int]:
    """Split ``host[:port]`` or ``tcp://host[:port]`` into (host, port)."""
    addr = address.strip()
    if addr.startswith("tcp://"):
        addr = addr[len("tcp://"):]
    if not addr:
        raise ValueError("device address is empty")
    host, sep, port_str = addr.rpartition(":")
    if not sep:
        return addr, DEFAULT_PORT
    if not host:
        raise ValueError(f"device address '{address}' has no host")
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"device address '{address}' has an invalid port") from None
    if not 0 < port < 65536:
        raise ValueError(f"device address '{address}' port out of range")
    return host, port


def encode_state(state: DeviceState) -> bytes:
    return struct.pack(STATE_FORMAT, state.width, state.max_width, state.is_grasped, state.temperature)


def decode_state(data: bytes) -> DeviceState:
    if len(data) != STATE_SIZE:
        raise DeviceError(f"State payload size mismatch: got {len(data)} bytes, expected {STATE_SIZE}")
    width, max_width, is_grasped, temperature = struct.unpack(STATE_FORMAT, data)
    return DeviceState(
        width=width,
        max_width=max_width,
        is_grasped=bool(is_grasped),
        temperature=temperature,
    )


class _Channel:
    """One TCP connection carrying one request at a time."""

    def __init__(self, name: str, host: str, port: int, timeout: float):
        self.name = name
        self.host = host
        self.port = port
        self.timeout = timeout
        self._lock = threading.Lock()
        self._socket: Optional[socket.socket] = None

    def open(self) -> None:
        with self._lock:
            self._ensure_open()

    def close(self) -> None:
        with self._lock:
            self._close()

    def request(self, msg_id: int, payload: bytes = b"") -> bytes:
        """Send one request and return the response body after the status byte."""
        with self._lock:
            sock = self._ensure_open()
            try:
                sock.sendall(struct.pack(HEADER_FORMAT, msg_id, len(payload)) + payload)
                resp_id, length = struct.unpack(HEADER_FORMAT, self._receive_exact(sock, HEADER_SIZE))
                body = self._receive_exact(sock, length)
            except socket.timeout:
                self._close()
                raise DeviceError(f"{self.name}: no response from gripper within {self.timeout:.1f}s") from None
            except OSError as e:
                self._close()
                raise DeviceError(f"{self.name}: connection lost ({e})") from e

        if resp_id != msg_id:
            raise DeviceError(f"{self.name}: unexpected response id 0x{resp_id:02x} for 0x{msg_id:02x}")
        if not body:
            raise DeviceError(f"{self.name}: empty response")
        if body[0] != STATUS_OK:
            raise DeviceError(body[1:].decode("utf-8", errors="replace") or "gripper reported an error")
        return body[1:]

    def _ensure_open(self) -> socket.socket:
        if self._socket is None:
            try:
                self._socket = socket.create_connection((self.host, self.port), timeout=self.timeout)
            except OSError as e:
                raise DeviceError(f"{self.name}: cannot connect to {self.host}:{self.port} ({e})") from e
            logger.debug("Opened %s channel to %s:%d", self.name, self.host, self.port)
        return self._socket

    def _close(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

    @staticmethod
    def _receive_exact(sock: socket.socket, num_bytes: int) -> bytes:
        data = b""
        while len(data) < num_bytes:
            chunk = sock.recv(num_bytes - len(data))
            if not chunk:
                raise ConnectionResetError("connection closed by gripper")
            data += chunk
        return data


class GripperConnection(GripperDevice):
    """
    Connection to a gripper controller over TCP.

    Uses three channels so that stop requests and state polling are never
    stuck behind a long-running motion:
      - motion: homing / move / grasp, serialised by a MotionGate
      - stop:   stop requests
      - state:  read_state
    """

    def __init__(self, host: str, port: int = DEFAULT_PORT, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._gate = MotionGate()
        self._motion = _Channel("motion", host, port, timeout)
        self._stop = _Channel("stop", host, port, timeout)
        self._state = _Channel("state", host, port, timeout)
        self._connected = False

    @classmethod
    def from_address(cls, address: str, timeout: float = 10.0) -> "GripperConnection":
        host, port = parse_device_address(address)
        return cls(host, port, timeout=timeout)

    def connect(self) -> None:
        try:
            for channel in (self._motion, self._stop, self._state):
                channel.open()
            self.read_state()
        except DeviceError:
            self.disconnect()
            raise
        self._connected = True
        logger.info("Connected to gripper at %s:%d", self.host, self.port)

    def disconnect(self) -> None:
        self._gate.stop()
        for channel in (self._motion, self._stop, self._state):
            channel.close()
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def home(self) -> None:
        with self._gate.motion():
            self._motion.request(MSG_HOMING)

    def stop(self) -> None:
        self._gate.stop()
        self._stop.request(MSG_STOP)

    def move(self, width: float, speed: float) -> float:
        with self._gate.motion():
            body = self._motion.request(MSG_MOVE, struct.pack("<dd", width, speed))
        if len(body) != 8:
            raise DeviceError(f"Move response size mismatch: got {len(body)} bytes, expected 8")
        return struct.unpack("<d", body)[0]

    def grasp(
        self,
        width: float,
        speed: float,
        force: float,
        epsilon_inner: float,
        epsilon_outer: float,
    ) -> DeviceState:
        payload = struct.pack("<ddddd", width, speed, force, epsilon_inner, epsilon_outer)
        with self._gate.motion():
            body = self._motion.request(MSG_GRASP, payload)
        return decode_state(body)

    def read_state(self) -> DeviceState:
        return decode_state(self._state.request(MSG_READ_STATE))
