"""pitchtrainer CLI entry point."""

import logging
import re
import sys
from collections.abc import Callable

import click
import numpy as np

from pitchtrainer import __version__
from pitchtrainer.bar_generator import BarGenerator
from pitchtrainer.collaborators import InMemoryStatistics, LoggingAnalytics
from pitchtrainer.errors import TrainerError
from pitchtrainer.input_sources import (
    InputEvent,
    MidoInputSource,
    SyntheticEventSource,
    list_input_ports,
    virtual_keyboard_events,
)
from pitchtrainer.models import BarPair
from pitchtrainer.session import TrainingSession
from pitchtrainer.settings import DEFAULT_BAR_LENGTH, RANDOM_KEY_SIGNATURE, ClefRanges, Settings
from pitchtrainer.theory import KEY_SIGNATURE_NAMES, note_name

MAX_CHORD_SIZE = 5

_RANGE_PATTERN = re.compile(r"^(\d+)-(\d+)$")


def _parse_size_range(
    ctx: click.Context, param: click.Parameter, value: str
) -> tuple[int, int]:
    """Turn 'MIN-MAX' (or a single number) into an inclusive chord-size range."""
    text = value.strip()
    if text.isdigit():
        text = f"{text}-{text}"
    match = _RANGE_PATTERN.match(text)
    if not match:
        raise click.BadParameter("use MIN-MAX, e.g. 1-3")
    low, high = int(match.group(1)), int(match.group(2))
    if low > high or high > MAX_CHORD_SIZE:
        raise click.BadParameter(f"need MIN <= MAX <= {MAX_CHORD_SIZE}")
    return low, high


def _settings_options(func: Callable) -> Callable:
    """Options shared by every command that builds an exercise."""
    options = [
        click.option(
            "--treble",
            default="1-3",
            show_default=True,
            callback=_parse_size_range,
            metavar="MIN-MAX",
            help="Notes per treble chord. 0 means rests only.",
        ),
        click.option(
            "--bass",
            default="1-3",
            show_default=True,
            callback=_parse_size_range,
            metavar="MIN-MAX",
            help="Notes per bass chord. 0 means rests only.",
        ),
        click.option(
            "--accidentals/--no-accidentals",
            default=False,
            show_default=True,
            help="Include pitches outside the key signature.",
        ),
        click.option(
            "--key",
            "key_signature",
            type=click.Choice([*KEY_SIGNATURE_NAMES, RANDOM_KEY_SIGNATURE], case_sensitive=False),
            default="C",
            show_default=True,
            help="Major key signature of the bars, or 'random' for a new one per bar pair.",
        ),
        click.option(
            "--bar-length",
            type=click.IntRange(1, 16),
            default=DEFAULT_BAR_LENGTH,
            show_default=True,
            help="Number of chords per bar.",
        ),
        click.option(
            "--seed",
            type=int,
            default=None,
            help="Seed for reproducible exercises.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_settings(
    treble: tuple[int, int],
    bass: tuple[int, int],
    accidentals: bool,
    key_signature: str,
    bar_length: int,
    midi_inputs: tuple[str, ...] = (),
) -> Settings:
    return Settings(
        chord_size_ranges=ClefRanges(treble=treble, bass=bass),
        use_accidentals=accidentals,
        key_signature=key_signature,
        midi_inputs=midi_inputs,
        bar_length=bar_length,
    )


def _format_bars(bars: BarPair, current: int | None = None) -> list[str]:
    """Render a bar pair as one text line per chord position."""
    lines = [f"  {'':2} {'#':>2}  {'Treble':<20}  Bass"]
    for index in range(len(bars)):
        marker = "->" if index == current else ""
        treble = " ".join(note_name(n) for n in bars.treble[index].notes) or "rest"
        bass = " ".join(note_name(n) for n in bars.bass[index].notes) or "rest"
        lines.append(f"  {marker:2} {index + 1:>2}  {treble:<20}  {bass}")
    return lines


def _show_session(session: TrainingSession) -> None:
    click.echo()
    click.echo(f"Key signature: {session.key_signature.name}")
    for line in _format_bars(session.bars, session.chord_index):
        click.echo(line)
    if session.error_message:
        click.echo(f"  ! {session.error_message}")


def _show_summary(statistics: InMemoryStatistics) -> None:
    summary = statistics.summary()
    click.echo()
    click.echo(f"Answered : {summary.total}  |  Correct: {summary.successes} "
               f"({summary.success_rate:.0%})")
    if summary.mean_success_time_ms is not None:
        click.echo(f"Mean time: {summary.mean_success_time_ms / 1000:.2f} s per chord")


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="pitchtrainer")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """pitchtrainer: sight-reading drills checked against your MIDI keyboard."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ── generate subcommand ────────────────────────────────────────────────────────

@main.command()
@_settings_options
def generate(
    treble: tuple[int, int],
    bass: tuple[int, int],
    accidentals: bool,
    key_signature: str,
    bar_length: int,
    seed: int | None,
) -> None:
    """
    Print one randomly generated pair of treble and bass bars.

    \b
    Examples:
      pitchtrainer generate --seed 42
      pitchtrainer generate --treble 2-4 --bass 1 --key random --accidentals
    """
    settings = _build_settings(treble, bass, accidentals, key_signature, bar_length)
    generator = BarGenerator(np.random.default_rng(seed))
    try:
        signature = generator.generate_key_signature(settings)
        bars = generator.generate_bars(settings, signature)
    except TrainerError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Key signature: {signature.name}")
    for line in _format_bars(bars):
        click.echo(line)


# ── ports subcommand ───────────────────────────────────────────────────────────

@main.command()
def ports() -> None:
    """List the MIDI input ports that can be passed to 'train --port'."""
    try:
        names = list_input_ports()
    except (OSError, ImportError) as exc:
        click.echo(f"  ERROR: Could not query MIDI ports: {exc}", err=True)
        sys.exit(1)

    if not names:
        click.echo("No MIDI input ports found. Use 'pitchtrainer train' for the virtual keyboard.")
        return
    for name in names:
        click.echo(name)


# ── train subcommand ───────────────────────────────────────────────────────────

def _play(session: TrainingSession, events: list[InputEvent]) -> None:
    """Feed *events* in order and echo an error that a later release already resolved."""
    feedback = None
    for event in events:
        session.handle_event(event)
        feedback = session.error_message or feedback
    if feedback and feedback != session.error_message:
        click.echo(f"  ! {feedback}")


def _train_with_keyboard(session: TrainingSession) -> None:
    click.echo("No MIDI device selected, using the virtual keyboard.")
    click.echo("Type the notes of the marked chord (e.g. 'C4 E4 G4'), "
               "'t'/'f' to simulate success/failure, 'q' to quit.")
    debug_events = SyntheticEventSource()
    while True:
        _show_session(session)
        try:
            line = click.prompt("Play", default="", show_default=False).strip()
        except click.Abort:
            return
        command = line.lower()
        if command == "q":
            return
        if command == "t":
            _play(session, debug_events.success_events(session.current_keys()))
        elif command == "f":
            _play(session, debug_events.failure_events(session.current_keys()))
        elif line:
            try:
                events = virtual_keyboard_events(line)
            except ValueError as exc:
                click.echo(f"  ERROR: {exc}", err=True)
                continue
            _play(session, events)


def _train_with_port(session: TrainingSession, port_name: str) -> None:
    click.echo(f"Listening on MIDI port '{port_name}'. Press Ctrl+C to stop.")
    _show_session(session)
    shown = (session.bars, session.chord_index, session.error_message)
    with MidoInputSource(port_name) as source:
        try:
            for event in source:
                session.handle_event(event)
                state = (session.bars, session.chord_index, session.error_message)
                if state != shown:
                    _show_session(session)
                    shown = state
        except KeyboardInterrupt:
            return


@main.command()
@_settings_options
@click.option(
    "--port",
    default=None,
    metavar="NAME",
    help="MIDI input port to listen on (see 'pitchtrainer ports'). "
         "Without it a virtual keyboard reads note names from the terminal.",
)
def train(
    treble: tuple[int, int],
    bass: tuple[int, int],
    accidentals: bool,
    key_signature: str,
    bar_length: int,
    seed: int | None,
    port: str | None,
) -> None:
    """
    Practise reading bars chord by chord.

    Each marked chord has to be played with all its notes held at once.
    Wrong keys are counted as failures until released; answers slower than
    30 seconds are left out of the statistics.

    \b
    Examples:
      pitchtrainer train --port "Digital Piano"
      pitchtrainer train --treble 1 --bass 0 --key random
    """
    settings = _build_settings(
        treble, bass, accidentals, key_signature, bar_length,
        midi_inputs=(port,) if port else (),
    )
    statistics = InMemoryStatistics()
    try:
        session = TrainingSession(
            settings,
            statistics=statistics,
            analytics=LoggingAnalytics(),
            generator=BarGenerator(np.random.default_rng(seed)),
        )
    except TrainerError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)

    click.echo(f"pitchtrainer v{__version__}")
    try:
        if settings.midi_inputs:
            _train_with_port(session, settings.midi_inputs[0])
        else:
            _train_with_keyboard(session)
    except (OSError, ImportError) as exc:
        click.echo(f"  ERROR: Could not open MIDI port: {exc}", err=True)
        sys.exit(1)
    finally:
        session.close()

    _show_summary(statistics)
