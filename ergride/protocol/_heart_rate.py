from __future__ import annotations

from dataclasses import dataclass
from struct import unpack_from

from .._models import HeartRateSample
from ._ftms import bt16

# Heart Rate Service and characteristics
HEART_RATE_SERVICE_UUID = bt16(0x180D)
HEART_RATE_MEASUREMENT_UUID = bt16(0x2A37)

# Heart Rate Measurement flags
HR_FLAG_VALUE_UINT16 = 0x01
HR_FLAG_ENERGY_EXPENDED = 0x08
HR_FLAG_RR_INTERVALS = 0x10

RR_UNITS_PER_SECOND = 1024


@dataclass(frozen=True)
class HeartRateMeasurement:
    """Decoded Heart Rate Measurement notification."""

    heart_rate: int
    rr_intervals: tuple[int, ...] = ()  # milliseconds

    def to_sample(self, timestamp: int) -> HeartRateSample:
        return HeartRateSample(timestamp=timestamp, hr=self.heart_rate, rr_intervals=self.rr_intervals)


def decode_heart_rate_measurement(payload: bytes) -> HeartRateMeasurement:
    """Decode a Heart Rate Measurement notification.

    Byte 0 holds the flags. The heart rate is uint8 or uint16 (bit 0), an
    energy-expended uint16 follows when bit 3 is set and is skipped, and a
    run of uint16 RR intervals in 1/1024 s fills the rest when bit 4 is set.
    """
    if len(payload) < 2:
        raise ValueError(f"Heart rate measurement too short: {payload.hex()}")
    flags = payload[0]
    offset = 1

    if flags & HR_FLAG_VALUE_UINT16:
        if len(payload) < 3:
            raise ValueError(f"Heart rate measurement truncated: {payload.hex()}")
        (heart_rate,) = unpack_from("<H", payload, offset)
        offset += 2
    else:
        heart_rate = payload[offset]
        offset += 1

    if flags & HR_FLAG_ENERGY_EXPENDED:
        offset += 2

    rr_intervals: list[int] = []
    if flags & HR_FLAG_RR_INTERVALS:
        while offset + 1 < len(payload):
            (raw,) = unpack_from("<H", payload, offset)
            rr_intervals.append(round(raw / RR_UNITS_PER_SECOND * 1000))
            offset += 2

    return HeartRateMeasurement(heart_rate=heart_rate, rr_intervals=tuple(rr_intervals))
