"""FTMS and Heart Rate Service wire formats."""

from ._ftms import (
    FITNESS_MACHINE_CONTROL_POINT_UUID,
    FITNESS_MACHINE_FEATURE_UUID,
    FTMS_SERVICE_UUID,
    INDOOR_BIKE_DATA_UUID,
    INDOOR_BIKE_FIELDS,
    MAX_TARGET_POWER,
    MIN_TARGET_POWER,
    ControlPointOpcode,
    FieldSpec,
    IndoorBikeData,
    bt16,
    clamp_target_power,
    decode_indoor_bike_data,
    encode_indoor_bike_data,
    encode_request_control,
    encode_set_target_power,
)
from ._heart_rate import (
    HEART_RATE_MEASUREMENT_UUID,
    HEART_RATE_SERVICE_UUID,
    HeartRateMeasurement,
    decode_heart_rate_measurement,
)

__all__ = [
    "FITNESS_MACHINE_CONTROL_POINT_UUID",
    "FITNESS_MACHINE_FEATURE_UUID",
    "FTMS_SERVICE_UUID",
    "HEART_RATE_MEASUREMENT_UUID",
    "HEART_RATE_SERVICE_UUID",
    "INDOOR_BIKE_DATA_UUID",
    "INDOOR_BIKE_FIELDS",
    "MAX_TARGET_POWER",
    "MIN_TARGET_POWER",
    "ControlPointOpcode",
    "FieldSpec",
    "HeartRateMeasurement",
    "IndoorBikeData",
    "bt16",
    "clamp_target_power",
    "decode_heart_rate_measurement",
    "decode_indoor_bike_data",
    "encode_indoor_bike_data",
    "encode_request_control",
    "encode_set_target_power",
]
