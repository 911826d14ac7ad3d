"""Ride recording command for the ergride CLI."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .._errors import ServiceNotFoundError, UnsupportedError, UserCancelledError
from .._models import ConnectionState
from .._registry import DeviceRegistry
from .._scanner import DiscoveredDevice
from ..client import BleakTransport, DeviceCallbacks, DeviceChooser, DeviceManager
from ..recorder import (
    JsonFileStore,
    RecorderConfig,
    RecorderState,
    RideData,
    RideHistory,
    RideRecorder,
    RideSampler,
    RiderProfile,
    build_fit_activity,
)
from ..workout import BUILT_IN_WORKOUTS, WorkoutPlayer, WorkoutStep


def _prompt_chooser(kind: str) -> DeviceChooser:
    """Build a chooser that asks on the terminal which device to use."""

    async def _choose(devices: Sequence[DiscoveredDevice]) -> DiscoveredDevice | None:
        print(f"\nFound {len(devices)} {kind}(s):")
        for i, device in enumerate(devices, 1):
            print(f"  {i}. {device.display_name} ({device.address})")
        answer = await asyncio.to_thread(input, f"Select {kind} [1-{len(devices)}, empty to skip]: ")
        answer = answer.strip()
        if not answer:
            return None
        try:
            index = int(answer)
        except ValueError:
            print(f"✗ Invalid choice: {answer}")
            return None
        if not 1 <= index <= len(devices):
            print(f"✗ Invalid choice: {answer}")
            return None
        return devices[index - 1]

    return _choose


def _status_printer(label: str) -> Callable[[ConnectionState], None]:
    def _print(state: ConnectionState) -> None:
        print(f"[{label}] {state.value}")

    return _print


def _print_summary(ride: RideData) -> None:
    summary = ride.summary
    if summary is None:
        return
    minutes, seconds = divmod(ride.duration // 1000, 60)
    print("\n✓ Ride summary:")
    print(f"  Duration: {minutes}:{seconds:02d}")
    print(f"  Distance: {summary.distance_km:.2f} km")
    print(f"  Power: avg {summary.avg_power} W, max {summary.max_power} W")
    print(f"  Cadence: avg {summary.avg_cadence} rpm")
    if summary.max_hr:
        print(f"  Heart rate: avg {summary.avg_hr} bpm, max {summary.max_hr} bpm")
    if summary.time_in_power_zones:
        zones = ", ".join(
            f"Z{zone} {ms // 1000}s" for zone, ms in summary.time_in_power_zones.items() if ms
        )
        print(f"  Power zones: {zones}")
    if summary.time_in_hr_zones:
        zones = ", ".join(f"Z{zone} {ms // 1000}s" for zone, ms in summary.time_in_hr_zones.items() if ms)
        if zones:
            print(f"  HR zones: {zones}")


async def _connect_devices(
    manager: DeviceManager,
    trainer: DeviceCallbacks,
    hrm: DeviceCallbacks | None,
) -> None:
    """Reconnect known devices and prompt for whatever is still missing."""
    result = await manager.try_auto_connect(trainer, hrm)
    if result.trainer:
        print(f"✓ Trainer: {result.trainer.name or result.trainer.id}")
    else:
        info = await manager.connect_trainer(trainer, chooser=_prompt_chooser("trainer"))
        print(f"✓ Trainer: {info.name or info.id}")

    if hrm is None:
        return
    if result.hrm:
        print(f"✓ Heart rate: {result.hrm.name or result.hrm.id}")
        return
    try:
        info = await manager.connect_hrm(hrm, chooser=_prompt_chooser("heart-rate sensor"))
        print(f"✓ Heart rate: {info.name or info.id}")
    except (UserCancelledError, ServiceNotFoundError) as e:
        print(f"Continuing without heart rate ({e})")


async def _display_loop(recorder: RideRecorder, sampler: RideSampler, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        reading = sampler.live.reading()
        minutes, seconds = divmod(recorder.get_elapsed_seconds(), 60)
        print(
            f"{minutes:>4}:{seconds:02d} | {reading.power or 0:>4} W | "
            f"{round(reading.cadence or 0):>3} rpm | {reading.hr or 0:>3} bpm | "
            f"{recorder.last_distance / 1000:6.2f} km"
        )


def begin_recording(recorder: RideRecorder, resume: bool) -> None:
    """Continue a saved ride when asked to, otherwise start a new one.

    A ride that was paused when it was interrupted is resumed as well, since
    nothing else in the CLI can unpause it.
    """
    if resume and recorder.recover_ride():
        if recorder.is_paused:
            recorder.resume_recording()
            print(f"✓ Resumed paused ride at {recorder.get_elapsed_seconds()}s")
        else:
            print(f"✓ Resumed ride at {recorder.get_elapsed_seconds()}s")
        return
    recorder.start_recording()
    print("✓ Recording started")


def _workout_player(
    name: str, manager: DeviceManager, recorder: RideRecorder
) -> WorkoutPlayer:
    workout = BUILT_IN_WORKOUTS[name]

    def _print_step(index: int, step: WorkoutStep) -> None:
        minutes, seconds = divmod(step.duration, 60)
        label = f"Step {index + 1}/{len(workout.steps)}"
        if step.name:
            label += f" {step.name}"
        print(f"▶ {label}: {step.power} W for {minutes}:{seconds:02d}")

    def _print_complete() -> None:
        print(f"✓ Workout {workout.name} complete")

    return WorkoutPlayer(
        workout,
        manager.set_target_power,
        active=lambda: recorder.state is RecorderState.RECORDING,
        on_step=_print_step,
        on_complete=_print_complete,
    )


def write_activity(path: Path, ride: RideData, profile: RiderProfile | None) -> None:
    activity = build_fit_activity(ride, profile)
    path.write_text(json.dumps(dataclasses.asdict(activity), indent=2), encoding="utf-8")
    print(f"✓ Activity data written to {path}")


async def ride(args: argparse.Namespace) -> None:
    """Connect, record a ride until Ctrl+C, then save it."""
    data_dir = Path(args.data_dir).expanduser()
    store = JsonFileStore(data_dir)
    config = RecorderConfig()
    transport = BleakTransport(DeviceRegistry(data_dir / "devices.json"), scan_timeout=args.timeout)
    manager = DeviceManager(transport)
    recorder = RideRecorder(store, config)
    sampler = RideSampler(recorder, interval=config.sample_interval)
    history = RideHistory(store, limit=config.history_limit)
    profile = RiderProfile(ftp=args.ftp, max_hr=args.max_hr) if args.ftp or args.max_hr else None

    trainer_callbacks = DeviceCallbacks(
        on_data=sampler.handle_trainer_data, on_connection_change=_status_printer("Trainer")
    )
    hrm_callbacks = None
    if not args.no_hrm:
        hrm_callbacks = DeviceCallbacks(
            on_data=sampler.handle_heart_rate, on_connection_change=_status_printer("HRM")
        )

    try:
        await _connect_devices(manager, trainer_callbacks, hrm_callbacks)
    except UnsupportedError as e:
        print(f"\n✗ {e}")
        sys.exit(1)
    except UserCancelledError:
        print("\n✗ No trainer selected")
        await manager.disconnect_all()
        sys.exit(1)
    except ServiceNotFoundError as e:
        print(f"\n✗ {e}")
        await manager.disconnect_all()
        sys.exit(1)

    begin_recording(recorder, args.resume)

    if args.erg is not None:
        if await manager.set_target_power(args.erg):
            print(f"✓ ERG target {args.erg} W")
        else:
            print("✗ Trainer did not accept the ERG target")

    player = None
    if args.workout:
        player = _workout_player(args.workout, manager, recorder)

    sampler.start()
    if player is not None:
        player.start()
    print("Riding (Ctrl+C to stop)...\n")
    try:
        await _display_loop(recorder, sampler, args.interval)
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\nStopping ride...")
    finally:
        if player is not None:
            await player.stop()
        await sampler.stop()
        ride_data = recorder.stop_recording(profile)
        await manager.disconnect_all()

    if ride_data is None:
        print("✗ Nothing was recorded")
        return

    _print_summary(ride_data)
    entry = history.save(ride_data)
    if entry is not None:
        print(f"✓ Saved as {entry.id}")
    if args.output:
        write_activity(Path(args.output), ride_data, profile)
