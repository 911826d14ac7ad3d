from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from pydantic import BaseModel, Field

from .._errors import ServiceNotFoundError, UnsupportedError, UserCancelledError
from .._models import ConnectionState, Role
from .._scanner import DiscoveredDevice
from .._time import now_ms
from ..protocol import (
    FITNESS_MACHINE_CONTROL_POINT_UUID,
    FTMS_SERVICE_UUID,
    HEART_RATE_MEASUREMENT_UUID,
    HEART_RATE_SERVICE_UUID,
    INDOOR_BIKE_DATA_UUID,
    clamp_target_power,
    decode_heart_rate_measurement,
    decode_indoor_bike_data,
    encode_request_control,
    encode_set_target_power,
)
from ._transport import BleLink, BleTransport, DeviceChooser, choose_first

LOGGER = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """Reconnection tuning for the device manager."""

    max_reconnect_attempts: int = Field(default=3, ge=0)
    reconnect_delay: float = Field(default=2.0, ge=0.0)


@dataclass(frozen=True)
class DeviceInfo:
    """Name and identifier of a connected peripheral."""

    name: str | None
    id: str


@dataclass(frozen=True)
class ConnectionStatus:
    """Snapshot of both peripheral roles."""

    trainer: ConnectionState
    trainer_name: str | None
    hrm: ConnectionState
    hrm_name: str | None


@dataclass
class AutoConnectResult:
    """Peripherals reconnected without prompting."""

    trainer: DeviceInfo | None = None
    hrm: DeviceInfo | None = None


@dataclass
class DeviceCallbacks:
    """Callbacks for one peripheral role.

    on_data receives TelemetrySample (trainer) or HeartRateSample (HRM)
    objects; on_connection_change receives ConnectionState values.
    """

    on_data: Callable[[Any], None] | None = None
    on_connection_change: Callable[[ConnectionState], None] | None = None


@dataclass(frozen=True)
class _RoleSpec:
    service_uuid: str
    data_uuid: str
    decode: Callable[[bytes], Any]
    needs_control: bool


_ROLES = {
    Role.TRAINER: _RoleSpec(
        FTMS_SERVICE_UUID, INDOOR_BIKE_DATA_UUID, decode_indoor_bike_data, needs_control=True
    ),
    Role.HRM: _RoleSpec(
        HEART_RATE_SERVICE_UUID,
        HEART_RATE_MEASUREMENT_UUID,
        decode_heart_rate_measurement,
        needs_control=False,
    ),
}


@dataclass(eq=False)
class _Session:
    """One connection to one peripheral; retries are bound to the session that lost its link."""

    role: Role
    callbacks: DeviceCallbacks
    device: DiscoveredDevice | None = None
    link: BleLink | None = None
    state: ConnectionState = ConnectionState.DISCONNECTED
    control_ready: bool = False
    reconnect_attempts: int = 0
    reconnect_task: asyncio.Task[None] | None = None
    closed: bool = False


class DeviceManager:
    """Connection owner for one FTMS trainer and at most one heart-rate sensor."""

    def __init__(
        self,
        transport: BleTransport,
        config: ConnectionConfig | None = None,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._transport = transport
        self._config = config or ConnectionConfig()
        self._clock = clock
        self._sessions: dict[Role, _Session] = {}
        self._locks = {role: asyncio.Lock() for role in Role}
        self._loop: asyncio.AbstractEventLoop | None = None

    def is_supported(self) -> bool:
        """Return whether Bluetooth LE can be used at all."""
        return self._transport.is_supported()

    async def connect_trainer(
        self,
        callbacks: DeviceCallbacks | None = None,
        *,
        chooser: DeviceChooser | None = None,
    ) -> DeviceInfo:
        """Pick and connect a trainer, subscribe to telemetry and take control.

        Raises:
            UnsupportedError: Bluetooth LE is not available
            UserCancelledError: no device was chosen
            ServiceNotFoundError: the device does not expose the FTMS service
        """
        return await self._connect(Role.TRAINER, callbacks, chooser)

    async def connect_hrm(
        self,
        callbacks: DeviceCallbacks | None = None,
        *,
        chooser: DeviceChooser | None = None,
    ) -> DeviceInfo:
        """Pick and connect a heart-rate sensor and subscribe to measurements."""
        return await self._connect(Role.HRM, callbacks, chooser)

    async def try_auto_connect(
        self,
        trainer: DeviceCallbacks | None = None,
        hrm: DeviceCallbacks | None = None,
    ) -> AutoConnectResult:
        """Reconnect to previously chosen devices without prompting.

        Each device is checked for the FTMS service first and the heart-rate
        service second. Devices matching neither are disconnected again.
        Failures are logged per device and never raised.
        """
        result = AutoConnectResult()
        if not self.is_supported():
            return result
        self._loop = asyncio.get_running_loop()
        callbacks = {Role.TRAINER: trainer, Role.HRM: hrm}

        try:
            devices = await self._transport.known_devices()
        except Exception as e:
            LOGGER.error("Could not list known devices: %s", e)
            return result
        LOGGER.info("Found %d known device(s)", len(devices))

        for device in devices:
            if self._transport.is_connected(device):
                LOGGER.debug("Skipping %s: already connected", device.display_name)
                continue
            wanted = [role for role in Role if not self._is_active(role)]
            if not wanted:
                break
            try:
                info = await self._auto_connect_device(device, wanted, callbacks)
            except Exception as e:
                LOGGER.warning("Auto-connect failed for %s: %s", device.display_name, e)
                continue
            if info is not None:
                role, device_info = info
                setattr(result, role.value, device_info)
        return result

    async def set_target_power(self, watts: float) -> bool:
        """Send an ERG target to the trainer.

        The value is clamped to 0-2000 W. Returns False instead of raising
        when there is no control channel or the trainer rejects the write.
        """
        session = self._sessions.get(Role.TRAINER)
        link = session.link if session else None
        if (
            session is None
            or link is None
            or not session.control_ready
            or session.state is not ConnectionState.CONNECTED
        ):
            LOGGER.warning("Control point not available")
            return False

        try:
            await link.write(FITNESS_MACHINE_CONTROL_POINT_UUID, encode_set_target_power(watts))
        except Exception as e:
            LOGGER.error("Failed to set target power: %s", e)
            return False
        LOGGER.debug("Target power set to %d W", clamp_target_power(watts))
        return True

    async def disconnect_all(self) -> None:
        """Close both peripherals and forget their handles. Safe to call repeatedly."""
        for role in Role:
            session = self._sessions.pop(role, None)
            if session is not None:
                await self._close(session)

    def get_connection_status(self) -> ConnectionStatus:
        """Return the current state and device name of both roles."""
        trainer = self._sessions.get(Role.TRAINER)
        hrm = self._sessions.get(Role.HRM)
        return ConnectionStatus(
            trainer=trainer.state if trainer else ConnectionState.DISCONNECTED,
            trainer_name=trainer.device.name if trainer and trainer.device else None,
            hrm=hrm.state if hrm else ConnectionState.DISCONNECTED,
            hrm_name=hrm.device.name if hrm and hrm.device else None,
        )

    async def _connect(
        self,
        role: Role,
        callbacks: DeviceCallbacks | None,
        chooser: DeviceChooser | None,
    ) -> DeviceInfo:
        if not self.is_supported():
            raise UnsupportedError("Bluetooth LE is not supported on this platform")
        self._loop = asyncio.get_running_loop()
        spec = _ROLES[role]

        previous = self._sessions.get(role)
        if previous is not None:
            self._cancel_reconnect(previous)

        async with self._locks[role]:
            previous = self._sessions.pop(role, None)
            if previous is not None:
                await self._close(previous)

            session = _Session(role, callbacks or DeviceCallbacks())
            self._sessions[role] = session
            self._set_state(session, ConnectionState.CONNECTING)
            try:
                device = await self._transport.request_device([spec.service_uuid], chooser or choose_first)
                if device is None:
                    raise UserCancelledError(f"No {role.value} device selected")
                session.device = device
                await self._open(session)
            except BaseException:
                self._set_state(session, ConnectionState.DISCONNECTED)
                if self._sessions.get(role) is session:
                    del self._sessions[role]
                raise

            self._set_state(session, ConnectionState.CONNECTED)
            LOGGER.info("Connected %s %s", role.value, device.display_name)
            return DeviceInfo(name=device.name, id=device.address)

    async def _auto_connect_device(
        self,
        device: DiscoveredDevice,
        wanted: list[Role],
        callbacks: dict[Role, DeviceCallbacks | None],
    ) -> tuple[Role, DeviceInfo] | None:
        link = await self._transport.connect(device, self._handle_link_lost)
        role = next((r for r in wanted if link.has_service(_ROLES[r].service_uuid)), None)
        if role is None:
            LOGGER.info("Device not recognized as trainer or HRM: %s", device.display_name)
            await self._drop_link(link)
            return None

        async with self._locks[role]:
            if self._is_active(role):
                LOGGER.debug("Skipping %s: %s already connected", device.display_name, role.value)
                await self._drop_link(link)
                return None
            session = _Session(role, callbacks[role] or DeviceCallbacks(), device=device)
            self._sessions[role] = session
            self._set_state(session, ConnectionState.CONNECTING)
            try:
                await self._open(session, link)
            except BaseException:
                self._set_state(session, ConnectionState.DISCONNECTED)
                if self._sessions.get(role) is session:
                    del self._sessions[role]
                raise
            self._set_state(session, ConnectionState.CONNECTED)

        LOGGER.info("Auto-connected %s %s", role.value, device.display_name)
        return role, DeviceInfo(name=device.name, id=device.address)

    async def _open(self, session: _Session, link: BleLink | None = None) -> None:
        """Run the connect, service check, subscribe and request-control sequence."""
        spec = _ROLES[session.role]
        if session.device is None:
            raise RuntimeError(f"No {session.role.value} device chosen for this session")
        if link is None:
            link = await self._transport.connect(session.device, self._handle_link_lost)
        session.link = link
        session.control_ready = False
        try:
            if not link.has_service(spec.service_uuid):
                raise ServiceNotFoundError(spec.service_uuid, session.device.name)
            await link.start_notify(spec.data_uuid, partial(self._handle_notification, session))
            if spec.needs_control:
                session.control_ready = await self._request_control(link)
        except BaseException:
            session.link = None
            await self._drop_link(link)
            raise

    async def _request_control(self, link: BleLink) -> bool:
        try:
            await link.write(FITNESS_MACHINE_CONTROL_POINT_UUID, encode_request_control())
        except Exception as e:
            LOGGER.warning("Trainer refused control request, ERG disabled: %s", e)
            return False
        return True

    def _handle_notification(self, session: _Session, data: bytes) -> None:
        if session.closed:
            return
        spec = _ROLES[session.role]
        try:
            sample = spec.decode(data).to_sample(self._clock())
        except ValueError as e:
            LOGGER.warning("Dropping malformed %s frame %s: %s", session.role.value, data.hex(), e)
            return
        if session.callbacks.on_data is None:
            return
        try:
            session.callbacks.on_data(sample)
        except Exception:
            LOGGER.exception("%s data callback failed", session.role.value)

    def _handle_link_lost(self, link: BleLink) -> None:
        session = next((s for s in self._sessions.values() if s.link is link), None)
        if session is None or session.closed or session.state is not ConnectionState.CONNECTED:
            return
        LOGGER.warning("%s %s disconnected", session.role.value, link.device.display_name)
        session.link = None
        session.control_ready = False
        self._set_state(session, ConnectionState.DISCONNECTED)
        if self._config.max_reconnect_attempts <= 0 or self._loop is None:
            return
        session.reconnect_task = self._loop.create_task(self._reconnect(session))

    async def _reconnect(self, session: _Session) -> None:
        """Retry the full connection sequence a bounded number of times."""
        role = session.role
        max_attempts = self._config.max_reconnect_attempts
        while session.reconnect_attempts < max_attempts:
            session.reconnect_attempts += 1
            async with self._locks[role]:
                if session.closed or self._sessions.get(role) is not session:
                    return
                self._set_state(session, ConnectionState.CONNECTING)
                LOGGER.info(
                    "Reconnecting %s (attempt %d/%d)", role.value, session.reconnect_attempts, max_attempts
                )
                try:
                    await self._open(session)
                except Exception as e:
                    LOGGER.warning("Reconnect attempt %d failed: %s", session.reconnect_attempts, e)
                else:
                    session.reconnect_attempts = 0
                    self._set_state(session, ConnectionState.CONNECTED)
                    LOGGER.info("Reconnected %s", role.value)
                    return
            if session.reconnect_attempts < max_attempts:
                await asyncio.sleep(self._config.reconnect_delay)

        LOGGER.warning("Max reconnect attempts reached for %s", role.value)
        session.reconnect_attempts = 0
        self._set_state(session, ConnectionState.DISCONNECTED)

    def _is_active(self, role: Role) -> bool:
        session = self._sessions.get(role)
        if session is None or session.closed:
            return False
        pending = session.reconnect_task is not None and not session.reconnect_task.done()
        return session.state is not ConnectionState.DISCONNECTED or pending

    def _cancel_reconnect(self, session: _Session) -> None:
        task = session.reconnect_task
        session.reconnect_task = None
        if task is not None and not task.done():
            task.cancel()

    async def _close(self, session: _Session) -> None:
        session.closed = True
        self._cancel_reconnect(session)
        link = session.link
        session.link = None
        session.control_ready = False
        if link is not None:
            await self._drop_link(link)
        self._set_state(session, ConnectionState.DISCONNECTED)

    @staticmethod
    async def _drop_link(link: BleLink) -> None:
        if not link.is_connected:
            return
        try:
            await link.disconnect()
        except Exception as e:
            LOGGER.warning("Error while disconnecting %s: %s", link.device.display_name, e)

    @staticmethod
    def _set_state(session: _Session, state: ConnectionState) -> None:
        if session.state is state:
            return
        session.state = state
        callback = session.callbacks.on_connection_change
        if callback is None:
            return
        try:
            callback(state)
        except Exception:
            LOGGER.exception("%s connection callback failed", session.role.value)
