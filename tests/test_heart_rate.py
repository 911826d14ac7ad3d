import pytest

from ergride.protocol import decode_heart_rate_measurement


@pytest.mark.unit
def test_uint8_heart_rate():
    measurement = decode_heart_rate_measurement(bytes.fromhex("0048"))

    assert measurement.heart_rate == 72
    assert measurement.rr_intervals == ()


@pytest.mark.unit
def test_uint16_heart_rate():
    assert decode_heart_rate_measurement(bytes.fromhex("012c01")).heart_rate == 300


@pytest.mark.unit
def test_rr_intervals_converted_to_ms():
    measurement = decode_heart_rate_measurement(bytes.fromhex("10" "48" "0004" "0003"))

    assert measurement.rr_intervals == (1000, 750)


@pytest.mark.unit
def test_energy_expended_is_skipped():
    measurement = decode_heart_rate_measurement(bytes.fromhex("18" "48" "3412" "0002"))

    assert measurement.heart_rate == 72
    assert measurement.rr_intervals == (500,)


@pytest.mark.unit
def test_uint16_with_rr_intervals():
    measurement = decode_heart_rate_measurement(bytes.fromhex("11" "9600" "5203"))

    assert measurement.heart_rate == 150
    # 850 / 1024 s
    assert measurement.rr_intervals == (830,)


@pytest.mark.unit
def test_trailing_odd_byte_ignored():
    measurement = decode_heart_rate_measurement(bytes.fromhex("10" "48" "0004" "01"))

    assert measurement.rr_intervals == (1000,)


@pytest.mark.unit
@pytest.mark.parametrize("payload", ["", "00", "012c"])
def test_short_payload_rejected(payload):
    with pytest.raises(ValueError):
        decode_heart_rate_measurement(bytes.fromhex(payload))


@pytest.mark.unit
def test_to_sample():
    sample = decode_heart_rate_measurement(bytes.fromhex("10" "48" "0004")).to_sample(5000)

    assert sample.timestamp == 5000
    assert sample.hr == 72
    assert sample.rr_intervals == (1000,)
