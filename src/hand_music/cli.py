"""Hand Music CLI — play an instrument with your hand.

Usage:
    hand-music play           — Live camera session
    hand-music record         — Record landmark data from camera
    hand-music replay         — Replay a recorded session through the engine
    hand-music instruments    — List available instruments
    hand-music fetch-samples  — Download sampler libraries
    hand-music init-config    — Write a default config file
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

import typer

from hand_music.config import CONFIG_ENV_VAR, ConfigError, EngineConfig

app = typer.Typer(
    name="hand-music",
    help="🎹 Play notes and chords with hand gestures in front of a camera.",
    add_completion=False,
)

logger = logging.getLogger("hand_music.cli")

HOW_TO_PLAY = """How to play:
  • Raise your hand to play notes
  • Move your hand up/down to change pitch
  • Move your hand closer/further to control volume
  • Raise thumb + 3 fingers for chord mode"""


@app.callback()
def main_options(
    log_level: str = typer.Option("warning", help="Log level"),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(path: Optional[str], **overrides) -> EngineConfig:
    try:
        config = EngineConfig.from_yaml(path) if path else EngineConfig()
        if overrides:
            data = config.to_dict()
            data.update({k: v for k, v in overrides.items() if v is not None})
            config = EngineConfig.from_dict(data)
    except (OSError, ConfigError) as e:
        typer.echo(f"❌ Invalid configuration: {e}", err=True)
        raise typer.Exit(1)
    return config


@app.command()
def play(
    config_path: Optional[str] = typer.Option(None, "--config", envvar=CONFIG_ENV_VAR, help="Path to YAML config"),
    instrument: Optional[str] = typer.Option(None, help="piano, synth or marimba"),
    mode: Optional[str] = typer.Option(None, help="single or chord"),
    camera: int = typer.Option(0, help="Camera device index"),
    display: bool = typer.Option(True, help="Show the camera window"),
):
    """Play live from the camera."""
    import cv2
    from hand_music.detector import HandDetector
    from hand_music.engine import Engine

    config = _load_config(config_path, instrument=instrument, mode=mode)

    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        typer.echo(f"❌ Could not open camera {camera}", err=True)
        raise typer.Exit(1)
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, 640)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 480)

    try:
        engine = Engine.from_config(config)
    except (OSError, ImportError, RuntimeError) as e:
        cap.release()
        typer.echo(f"❌ Could not load instrument {config.instrument.value}: {e}", err=True)
        typer.echo("   Try: hand-music fetch-samples", err=True)
        raise typer.Exit(1)

    detector = HandDetector(
        min_detection_confidence=config.min_detection_confidence,
        min_tracking_confidence=config.min_tracking_confidence,
    )

    typer.echo(f"🎹 Playing {config.instrument.value} ({config.mode.value} mode)")
    typer.echo(HOW_TO_PLAY)
    typer.echo("   Press 'q' in the window or Ctrl+C to stop")

    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                continue

            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            engine.process_frame(detector.detect(frame_rgb))

            if display:
                cv2.putText(
                    frame, engine.status, (10, 30),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.9, (0, 255, 255), 2,
                )
                cv2.imshow("Hand Music", frame)
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break
    except KeyboardInterrupt:
        pass
    finally:
        cap.release()
        detector.close()
        engine.close()
        if display:
            cv2.destroyAllWindows()

    stats = engine.stats
    typer.echo(f"\n🎵 {stats.total_frames} frames, {stats.notes} notes, {stats.chords} chords")


@app.command()
def record(
    output: str = typer.Option("session.json", "-o", help="Output file path"),
    duration: float = typer.Option(0, help="Recording duration in seconds (0 = until Ctrl+C)"),
    camera: int = typer.Option(0, help="Camera device index"),
    config_path: Optional[str] = typer.Option(None, "--config", envvar=CONFIG_ENV_VAR, help="Path to YAML config"),
):
    """Record hand landmarks from the camera."""
    import cv2
    from hand_music.detector import HandDetector
    from hand_music.recorder import SessionRecorder

    config = _load_config(config_path)

    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        typer.echo(f"❌ Could not open camera {camera}", err=True)
        raise typer.Exit(1)

    detector = HandDetector(
        min_detection_confidence=config.min_detection_confidence,
        min_tracking_confidence=config.min_tracking_confidence,
    )
    recorder = SessionRecorder()

    typer.echo(f"🎥 Recording from camera {camera}...")
    typer.echo("   Press Ctrl+C to stop")
    recorder.start()

    start = time.monotonic()
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                continue

            hand = detector.detect(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
            recorder.add_frame(hand)

            if recorder.frame_count % 30 == 0:
                elapsed = time.monotonic() - start
                typer.echo(
                    f"\r   Frames: {recorder.frame_count} | Duration: {elapsed:.1f}s | Hand: {'yes' if hand is not None else 'no'}",
                    nl=False,
                )

            if duration > 0 and (time.monotonic() - start) >= duration:
                break
    except KeyboardInterrupt:
        pass
    finally:
        recorder.stop()
        cap.release()
        detector.close()

    recorder.save(output)
    typer.echo(f"\n\n📼 Recorded {recorder.frame_count} frames ({recorder.duration_ms / 1000:.1f}s)")
    typer.echo(f"💾 Saved to: {output}")


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config_path: Optional[str] = typer.Option(None, "--config", envvar=CONFIG_ENV_VAR, help="Path to YAML config"),
    instrument: Optional[str] = typer.Option(None, help="piano, synth or marimba"),
    mode: Optional[str] = typer.Option(None, help="single or chord"),
    policy: Optional[str] = typer.Option(None, help="time_window_only or repeat_suppression"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commands without sound"),
    as_json: bool = typer.Option(False, "--json", help="Print commands as JSON lines"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier (with sound)"),
):
    """Replay a recorded session through the engine."""
    from hand_music.engine import Engine, PlaybackCommand
    from hand_music.instruments import LoggingInstrument
    from hand_music.recorder import SessionPlayer

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    config = _load_config(config_path, instrument=instrument, mode=mode, debounce_policy=policy)
    player = SessionPlayer.load(path)

    if dry_run:
        engine = Engine(LoggingInstrument(), config, clock=player.clock)
        frames = player.play()
    else:
        try:
            engine = Engine.from_config(config, clock=player.clock)
        except (OSError, ImportError, RuntimeError) as e:
            typer.echo(f"❌ Could not load instrument {config.instrument.value}: {e}", err=True)
            typer.echo("   Try: hand-music fetch-samples", err=True)
            raise typer.Exit(1)
        frames = player.play_realtime(speed=speed)

    if not as_json:
        typer.echo(f"▶️  Replaying {path.name} ({player.frame_count} frames, {player.duration_ms / 1000:.1f}s)")

    def on_command(command: PlaybackCommand):
        if as_json:
            typer.echo(json.dumps(command.to_dict()))
        else:
            typer.echo(f"   {command.timestamp_ms:>7d} ms  🎵 {command.label} (vol {command.volume:.2f})")

    engine.on_command(on_command)

    with engine:
        for hand in frames:
            engine.process_frame(hand)

    if not as_json:
        stats = engine.stats
        typer.echo(
            f"\n✅ Replay complete. {stats.commands} commands "
            f"({stats.notes} notes, {stats.chords} chords, {stats.suppressed} suppressed)."
        )


@app.command()
def instruments():
    """List the available instruments."""
    from hand_music.instruments import SAMPLE_LIBRARIES, InstrumentKind

    for kind in InstrumentKind:
        library = SAMPLE_LIBRARIES.get(kind)
        source = f"sampler ({library.name}: {', '.join(library.urls)})" if library else "synthesizer"
        typer.echo(f"  {kind.value:10s} {source}")


@app.command("fetch-samples")
def fetch_samples(
    dest: str = typer.Option("samples", help="Directory to store sample libraries"),
    overwrite: bool = typer.Option(False, help="Re-download existing files"),
):
    """Download the sample libraries used by sampler instruments."""
    import httpx
    from hand_music.instruments import SAMPLE_LIBRARIES, download_samples

    for kind in SAMPLE_LIBRARIES:
        typer.echo(f"📥 {kind.value}...")
        try:
            written = download_samples(kind, dest, overwrite=overwrite)
        except httpx.HTTPError as e:
            typer.echo(f"❌ Download failed for {kind.value}: {e}", err=True)
            raise typer.Exit(1)
        typer.echo(f"   {len(written)} file(s) written")

    typer.echo(f"✅ Samples in {dest}")


@app.command("init-config")
def init_config(
    output: str = typer.Option("hand_music.yml", "-o", help="Output file path"),
    force: bool = typer.Option(False, help="Overwrite an existing file"),
):
    """Write the default configuration to a YAML file."""
    path = Path(output)
    if path.exists() and not force:
        typer.echo(f"❌ {output} exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)

    EngineConfig().to_yaml(path)
    typer.echo(f"💾 Default config written to {output}")


def main():
    app()


if __name__ == "__main__":
    main()
