from __future__ import annotations

from dataclasses import dataclass, fields
from enum import IntEnum
from struct import pack, unpack_from

from .._models import TelemetrySample


def bt16(uuid16: int) -> str:
    """Convert a 16-bit SIG UUID to a 128-bit UUID string."""
    return f"0000{uuid16:04x}-0000-1000-8000-00805f9b34fb"


# FTMS Service and characteristics
FTMS_SERVICE_UUID = bt16(0x1826)

FITNESS_MACHINE_FEATURE_UUID = bt16(0x2ACC)
INDOOR_BIKE_DATA_UUID = bt16(0x2AD2)
FITNESS_MACHINE_CONTROL_POINT_UUID = bt16(0x2AD9)
FITNESS_MACHINE_STATUS_UUID = bt16(0x2ADA)

# Indoor Bike Data flags
INDOOR_BIKE_FLAG_MORE_DATA = 0x0001  # Bit 0: set means instantaneous speed is NOT present
INDOOR_BIKE_FLAG_AVERAGE_SPEED = 0x0002
INDOOR_BIKE_FLAG_CADENCE = 0x0004
INDOOR_BIKE_FLAG_AVERAGE_CADENCE = 0x0008
INDOOR_BIKE_FLAG_DISTANCE = 0x0010
INDOOR_BIKE_FLAG_RESISTANCE = 0x0020
INDOOR_BIKE_FLAG_POWER = 0x0040
INDOOR_BIKE_FLAG_AVERAGE_POWER = 0x0080
INDOOR_BIKE_FLAG_ENERGY = 0x0100
INDOOR_BIKE_FLAG_HEART_RATE = 0x0200
INDOOR_BIKE_FLAG_METABOLIC_EQUIVALENT = 0x0400
INDOOR_BIKE_FLAG_ELAPSED_TIME = 0x0800
INDOOR_BIKE_FLAG_REMAINING_TIME = 0x1000

MIN_TARGET_POWER = 0
MAX_TARGET_POWER = 2000


class ControlPointOpcode(IntEnum):
    """Fitness Machine Control Point opcodes."""

    REQUEST_CONTROL = 0x00
    RESET = 0x01
    SET_TARGET_POWER = 0x05
    START_OR_RESUME = 0x07
    STOP_OR_PAUSE = 0x08
    RESPONSE_CODE = 0x80


@dataclass(frozen=True)
class FieldSpec:
    """One flag-gated field of the Indoor Bike Data characteristic."""

    name: str
    flag: int
    size: int
    signed: bool = False
    scale: float = 1.0
    inverted: bool = False

    def present(self, flags: int) -> bool:
        """Return whether this field is in a frame with the given flags."""
        return not flags & self.flag if self.inverted else bool(flags & self.flag)

    def read(self, buffer: bytes, pos: int) -> int | float:
        raw = int.from_bytes(buffer[pos : pos + self.size], "little", signed=self.signed)
        return raw if self.scale == 1.0 else raw / self.scale

    def write(self, value: int | float) -> bytes:
        raw = round(value * self.scale)
        return raw.to_bytes(self.size, "little", signed=self.signed)


# Field order is fixed by the Indoor Bike Data characteristic; several fields share the energy flag.
INDOOR_BIKE_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("speed", INDOOR_BIKE_FLAG_MORE_DATA, 2, scale=100.0, inverted=True),
    FieldSpec("average_speed", INDOOR_BIKE_FLAG_AVERAGE_SPEED, 2, scale=100.0),
    FieldSpec("cadence", INDOOR_BIKE_FLAG_CADENCE, 2, scale=2.0),
    FieldSpec("average_cadence", INDOOR_BIKE_FLAG_AVERAGE_CADENCE, 2, scale=2.0),
    FieldSpec("distance", INDOOR_BIKE_FLAG_DISTANCE, 3),
    FieldSpec("resistance", INDOOR_BIKE_FLAG_RESISTANCE, 2, signed=True),
    FieldSpec("power", INDOOR_BIKE_FLAG_POWER, 2, signed=True),
    FieldSpec("average_power", INDOOR_BIKE_FLAG_AVERAGE_POWER, 2, signed=True),
    FieldSpec("total_energy", INDOOR_BIKE_FLAG_ENERGY, 2),
    FieldSpec("energy_per_hour", INDOOR_BIKE_FLAG_ENERGY, 2),
    FieldSpec("energy_per_minute", INDOOR_BIKE_FLAG_ENERGY, 1),
    FieldSpec("heart_rate", INDOOR_BIKE_FLAG_HEART_RATE, 1),
    FieldSpec("metabolic_equivalent", INDOOR_BIKE_FLAG_METABOLIC_EQUIVALENT, 1, scale=10.0),
    FieldSpec("elapsed_time", INDOOR_BIKE_FLAG_ELAPSED_TIME, 2),
    FieldSpec("remaining_time", INDOOR_BIKE_FLAG_REMAINING_TIME, 2),
)


@dataclass(frozen=True)
class IndoorBikeData:
    """Decoded Indoor Bike Data frame; fields missing from the frame are None."""

    speed: float | None = None  # km/h
    average_speed: float | None = None
    cadence: float | None = None  # rpm
    average_cadence: float | None = None
    distance: int | None = None  # meters
    resistance: int | None = None
    power: int | None = None  # watts
    average_power: int | None = None
    total_energy: int | None = None  # kcal
    energy_per_hour: int | None = None
    energy_per_minute: int | None = None
    heart_rate: int | None = None
    metabolic_equivalent: float | None = None
    elapsed_time: int | None = None  # seconds
    remaining_time: int | None = None

    def present_fields(self) -> set[str]:
        """Return the names of the fields carried by this frame."""
        return {f.name for f in fields(self) if getattr(self, f.name) is not None}

    def to_sample(self, timestamp: int) -> TelemetrySample:
        """Project the frame onto the telemetry fields the recorder uses."""
        return TelemetrySample(
            timestamp=timestamp,
            power=self.power,
            cadence=self.cadence,
            speed=self.speed,
            distance=self.distance,
            resistance=self.resistance,
        )


def decode_indoor_bike_data(payload: bytes) -> IndoorBikeData:
    """Decode an Indoor Bike Data notification.

    The frame starts with a 16-bit little-endian flag field; each field in
    INDOOR_BIKE_FIELDS follows only when its flag says so, so the offset
    advances per present field.
    """
    if len(payload) < 2:
        raise ValueError(f"Indoor bike data too short: {payload.hex()}")
    (flags,) = unpack_from("<H", payload, 0)
    offset = 2
    values: dict[str, int | float] = {}
    for spec in INDOOR_BIKE_FIELDS:
        if not spec.present(flags):
            continue
        if offset + spec.size > len(payload):
            raise ValueError(
                f"Indoor bike data truncated: {spec.name} needs {spec.size} bytes "
                f"at offset {offset}, frame is {len(payload)} bytes"
            )
        values[spec.name] = spec.read(payload, offset)
        offset += spec.size
    return IndoorBikeData(**values)


def encode_indoor_bike_data(data: IndoorBikeData) -> bytes:
    """Encode an Indoor Bike Data frame carrying exactly the fields that are set.

    Fields sharing a flag are written together; a missing member of such a
    group is encoded as zero.
    """
    present = data.present_fields()
    flags = 0
    for spec in INDOOR_BIKE_FIELDS:
        if spec.inverted:
            if spec.name not in present:
                flags |= spec.flag
        elif spec.name in present:
            flags |= spec.flag

    payload = bytearray(pack("<H", flags))
    for spec in INDOOR_BIKE_FIELDS:
        if spec.present(flags):
            value = getattr(data, spec.name)
            payload += spec.write(0 if value is None else value)
    return bytes(payload)


def encode_request_control() -> bytes:
    """Encode the control point request that must precede any target write."""
    return pack("<B", ControlPointOpcode.REQUEST_CONTROL)


def clamp_target_power(watts: float) -> int:
    """Round and clamp a power target to the supported range."""
    return max(MIN_TARGET_POWER, min(MAX_TARGET_POWER, round(watts)))


def encode_set_target_power(watts: float) -> bytes:
    """Encode a Set Target Power command: opcode then little-endian uint16 watts."""
    return pack("<BH", ControlPointOpcode.SET_TARGET_POWER, clamp_target_power(watts))
