import pytest

from ergride.protocol import (
    FTMS_SERVICE_UUID,
    ControlPointOpcode,
    IndoorBikeData,
    bt16,
    clamp_target_power,
    decode_indoor_bike_data,
    encode_indoor_bike_data,
    encode_request_control,
    encode_set_target_power,
)

# speed 25.00 km/h, cadence 90 rpm, power 250 W
SPEED_CADENCE_POWER = bytes.fromhex("4400" "c409" "b400" "fa00")
# no speed; distance 1234 m, resistance -5, power 300 W, heart rate 140
DISTANCE_RESISTANCE_POWER_HR = bytes.fromhex("7102" "d20400" "fbff" "2c01" "8c")


@pytest.mark.unit
def test_bt16():
    assert bt16(0x1826) == "00001826-0000-1000-8000-00805f9b34fb"
    assert FTMS_SERVICE_UUID == bt16(0x1826)


@pytest.mark.unit
def test_decode_speed_cadence_power():
    data = decode_indoor_bike_data(SPEED_CADENCE_POWER)

    assert data.speed == 25.0
    assert data.cadence == 90.0
    assert data.power == 250
    assert data.present_fields() == {"speed", "cadence", "power"}


@pytest.mark.unit
def test_decode_without_speed_advances_offsets():
    data = decode_indoor_bike_data(DISTANCE_RESISTANCE_POWER_HR)

    assert data.speed is None
    assert data.distance == 1234
    assert data.resistance == -5
    assert data.power == 300
    assert data.heart_rate == 140


@pytest.mark.unit
def test_decode_negative_power():
    assert decode_indoor_bike_data(bytes.fromhex("4100ecff")).power == -20


@pytest.mark.unit
def test_decode_times():
    data = decode_indoor_bike_data(bytes.fromhex("0118" "5802" "2c01"))

    assert data.elapsed_time == 600
    assert data.remaining_time == 300
    assert data.present_fields() == {"elapsed_time", "remaining_time"}


@pytest.mark.unit
def test_decode_flags_only_frame():
    assert decode_indoor_bike_data(bytes.fromhex("0100")).present_fields() == set()


@pytest.mark.unit
@pytest.mark.parametrize("frame", ["", "44", "4000fa", "4400c409b400"])
def test_decode_rejects_short_frames(frame):
    with pytest.raises(ValueError):
        decode_indoor_bike_data(bytes.fromhex(frame))


@pytest.mark.unit
@pytest.mark.parametrize("frame", [SPEED_CADENCE_POWER, DISTANCE_RESISTANCE_POWER_HR])
def test_encode_reproduces_decoded_frame(frame):
    data = decode_indoor_bike_data(frame)

    assert encode_indoor_bike_data(data) == frame
    assert decode_indoor_bike_data(encode_indoor_bike_data(data)) == data


@pytest.mark.unit
def test_encode_fills_shared_energy_fields():
    frame = encode_indoor_bike_data(IndoorBikeData(power=100, total_energy=50))
    data = decode_indoor_bike_data(frame)

    assert data.total_energy == 50
    assert data.energy_per_hour == 0
    assert data.energy_per_minute == 0
    assert data.speed is None


@pytest.mark.unit
def test_to_sample():
    sample = decode_indoor_bike_data(DISTANCE_RESISTANCE_POWER_HR).to_sample(1000)

    assert sample.timestamp == 1000
    assert sample.power == 300
    assert sample.distance == 1234
    assert sample.resistance == -5
    assert sample.speed is None
    assert sample.cadence is None


@pytest.mark.unit
def test_encode_request_control():
    assert encode_request_control() == bytes([ControlPointOpcode.REQUEST_CONTROL])


@pytest.mark.unit
@pytest.mark.parametrize(
    "watts,expected",
    [(-50, 0), (0, 0), (180, 180), (180.6, 181), (2000, 2000), (5000, 2000)],
)
def test_clamp_target_power(watts, expected):
    assert clamp_target_power(watts) == expected


@pytest.mark.unit
def test_encode_set_target_power():
    assert encode_set_target_power(5000) == bytes([0x05, 0xD0, 0x07])
    assert encode_set_target_power(-50) == bytes([0x05, 0x00, 0x00])
    assert encode_set_target_power(250) == bytes([0x05, 0xFA, 0x00])
