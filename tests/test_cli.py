import asyncio
import json
from argparse import Namespace

import pytest

from ergride import TelemetrySample
from ergride.cli._history import export_ride, show_history
from ergride.cli._main import DEFAULT_DATA_DIR, _parse_args
from ergride.cli._ride import begin_recording, ride
from ergride.cli._scan import list_devices
from ergride.recorder import (
    DataPoint,
    JsonFileStore,
    RecorderState,
    RideData,
    RideHistory,
    RideRecorder,
    RideSampler,
)


@pytest.mark.unit
def test_parse_ride_args():
    args = _parse_args(["-v", "ride", "--ftp", "250", "--erg", "180", "--no-hrm"])

    assert args.verbose
    assert args.data_dir == DEFAULT_DATA_DIR
    assert args.ftp == 250
    assert args.erg == 180
    assert args.no_hrm
    assert not args.resume
    assert args.func is ride


@pytest.mark.unit
def test_parse_export_args():
    args = _parse_args(["--data-dir", "/tmp/rides", "export", "abc123", "out.json"])

    assert args.data_dir == "/tmp/rides"
    assert args.ride_id == "abc123"
    assert args.output == "out.json"


@pytest.mark.unit
def test_command_required():
    with pytest.raises(SystemExit):
        _parse_args([])


def _saved_ride(data_dir):
    ride_data = RideData(
        start_time=1_700_000_000_000,
        duration=1000,
        data_points=[DataPoint(timestamp=1_700_000_001_000, elapsed=1000, power=200, hr=130)],
    )
    return RideHistory(JsonFileStore(data_dir)).save(ride_data)


@pytest.mark.unit
def test_history_json(tmp_path, capsys):
    entry = _saved_ride(tmp_path)

    asyncio.run(show_history(Namespace(data_dir=str(tmp_path), json=True, clear=False)))

    [row] = json.loads(capsys.readouterr().out)
    assert row["id"] == entry.id
    assert row["duration"] == 1000


@pytest.mark.unit
def test_history_empty(tmp_path, capsys):
    asyncio.run(show_history(Namespace(data_dir=str(tmp_path), json=False, clear=False)))

    assert "No saved rides" in capsys.readouterr().out


@pytest.mark.unit
def test_export(tmp_path):
    entry = _saved_ride(tmp_path)
    output = tmp_path / "ride.json"

    asyncio.run(export_ride(Namespace(data_dir=str(tmp_path), ride_id=entry.id, output=str(output))))

    activity = json.loads(output.read_text())
    assert activity["total_elapsed_time"] == 1
    assert activity["records"][0]["power"] == 200
    assert activity["records"][0]["heart_rate"] == 130


@pytest.mark.unit
def test_export_unknown_ride(tmp_path):
    with pytest.raises(SystemExit):
        asyncio.run(export_ride(Namespace(data_dir=str(tmp_path), ride_id="nope", output="x.json")))


@pytest.mark.unit
def test_forget_unknown_device(tmp_path):
    with pytest.raises(SystemExit):
        asyncio.run(list_devices(Namespace(data_dir=str(tmp_path), forget="AA:BB")))


@pytest.mark.unit
def test_parse_workout_args():
    args = _parse_args(["ride", "--workout", "vo2max"])

    assert args.workout == "vo2max"
    assert args.erg is None


@pytest.mark.unit
def test_workout_and_erg_are_exclusive():
    with pytest.raises(SystemExit):
        _parse_args(["ride", "--workout", "vo2max", "--erg", "180"])


@pytest.mark.unit
def test_parse_export_default_output():
    args = _parse_args(["export", "abc123"])

    assert args.output is None


def _interrupted_ride(store, clock, paused):
    recorder = RideRecorder(store, clock=clock)
    sampler = RideSampler(recorder)
    recorder.start_recording()
    sampler.handle_trainer_data(TelemetrySample(timestamp=clock.now, power=200, cadence=90.0))
    clock.advance(1000)
    sampler.tick()
    if paused:
        recorder.pause_recording()
        clock.advance(30_000)


@pytest.mark.unit
def test_resume_paused_ride_keeps_recording(store, clock, capsys):
    _interrupted_ride(store, clock, paused=True)

    recorder = RideRecorder(store, clock=clock)
    sampler = RideSampler(recorder)
    begin_recording(recorder, resume=True)
    sampler.handle_trainer_data(TelemetrySample(timestamp=clock.now, power=210, cadence=88.0))
    clock.advance(1000)
    sampler.tick()

    assert "Resumed paused ride" in capsys.readouterr().out
    assert recorder.state is RecorderState.RECORDING
    assert [point.power for point in recorder.data_points] == [200, 210]
    # Paused time is excluded from elapsed
    assert recorder.data_points[-1].elapsed == 2000


@pytest.mark.unit
def test_resume_running_ride(store, clock, capsys):
    started = clock.now
    _interrupted_ride(store, clock, paused=False)

    recorder = RideRecorder(store, clock=clock)
    begin_recording(recorder, resume=True)

    assert "Resumed ride" in capsys.readouterr().out
    assert recorder.state is RecorderState.RECORDING
    assert recorder.start_time == started
    assert not recorder.is_paused


@pytest.mark.unit
def test_resume_without_snapshot_starts_new_ride(store, clock, capsys):
    recorder = RideRecorder(store, clock=clock)
    begin_recording(recorder, resume=True)

    assert "Recording started" in capsys.readouterr().out
    assert recorder.state is RecorderState.RECORDING
    assert recorder.start_time == clock.now


@pytest.mark.unit
def test_history_clear(tmp_path, capsys):
    _saved_ride(tmp_path)

    asyncio.run(show_history(Namespace(data_dir=str(tmp_path), json=False, clear=True)))

    assert "cleared" in capsys.readouterr().out
    assert RideHistory(JsonFileStore(tmp_path)).entries() == []


@pytest.mark.unit
def test_export_default_filename(tmp_path, monkeypatch):
    entry = _saved_ride(tmp_path)
    monkeypatch.chdir(tmp_path)

    asyncio.run(export_ride(Namespace(data_dir=str(tmp_path), ride_id=entry.id, output=None)))

    [written] = list(tmp_path.glob("*_indoor_cycling.json"))
    assert json.loads(written.read_text())["records"][0]["power"] == 200
