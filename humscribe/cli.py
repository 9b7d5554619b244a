"""
Command-line interface for humscribe

Usage Commands:
    python -m humscribe.cli transcribe humming.wav -o melody.abc
    python -m humscribe.cli transcribe humming.wav --quantize --subdivision 16 --musicxml melody.musicxml
    python -m humscribe.cli transcribe humming.wav --bpm 90 --quantize
"""

import logging

import click
from pathlib import Path

from . import __version__
from .session import SessionConfig, TranscriptionSession
from .audio_loader import load_audio
from .export import MusicXMLExporter


@click.group()
@click.version_option(version=__version__, prog_name='humscribe')
@click.option('-v', '--verbose', is_flag=True, help='Log pipeline decisions (pitch locks, notes, tempo)')
def cli(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )


@cli.command()
@click.argument('audio_path', type=click.Path(exists=True))
@click.option('-o', '--output', type=click.Path(), help='Output path (default: input name + .abc)')
@click.option('--bpm', type=float, default=None, help='Tempo in BPM, clamped to 40-240 (default: detect when quantizing, else 120)')
@click.option('--quantize/--no-quantize', default=False, help='Snap notes to the tempo grid')
@click.option('--subdivision', type=click.Choice(['4', '8', '16']), default='8', help='Grid resolution as a note value (default: 8)')
@click.option('--title', type=str, default=None, help='Tune title')
@click.option('--normalize', is_flag=True, help='Peak-normalize quiet recordings before analysis')
@click.option('--musicxml', 'musicxml_path', type=click.Path(), default=None, help='Also write MusicXML to this path')
@click.option('--midi', 'midi_path', type=click.Path(), default=None, help='Also write MIDI to this path')
def transcribe(
    audio_path: str,
    output: str,
    bpm: float,
    quantize: bool,
    subdivision: str,
    title: str,
    normalize: bool,
    musicxml_path: str,
    midi_path: str,
):
    """
    Transcribe a sung or hummed melody to ABC notation.
    Currently acceptable audio formats: MP3, WAV, FLAC, OGG or M4A file
    """
    audio_path = Path(audio_path)
    output_path = Path(output) if output else audio_path.with_suffix('.abc')

    # Use filename as title if not provided
    if title is None:
        title = audio_path.stem

    config = SessionConfig(
        subdivision=int(subdivision),
        quantize=quantize,
        title=title,
    )

    click.echo(f"Transcribing: {audio_path.name}")

    # Step 1: Load audio
    click.echo("  [1/3] Loading audio...")
    audio = load_audio(audio_path, target_sr=config.sample_rate, normalize=normalize)
    click.echo(f"        {audio.duration_sec:.1f}s @ {audio.sample_rate}Hz")

    # Step 2: Frame-by-frame pitch tracking and note segmentation
    click.echo("  [2/3] Tracking pitch...")
    session = TranscriptionSession(config=config)
    result = session.run(audio)

    if bpm is not None:
        session.set_bpm(bpm)
        result = session.snapshot()

    if result.is_empty:
        click.echo("        No notes detected. Nothing written.")
        return

    mode = "quantized" if result.quantized else "unquantized"
    click.echo(f"        Found {result.num_notes} notes ({mode}) @ {result.tempo_bpm:g} BPM")

    # Step 3: Write notation
    click.echo("  [3/3] Writing notation...")
    output_path.write_text(result.abc + '\n', encoding='utf-8')
    click.echo(f"        Wrote: {output_path}")

    exporter = MusicXMLExporter(title=title)
    if musicxml_path:
        click.echo(f"        Wrote: {exporter.to_musicxml(result.notes, result.tempo_bpm, musicxml_path)}")
    if midi_path:
        click.echo(f"        Wrote: {exporter.to_midi(result.notes, result.tempo_bpm, midi_path)}")

    click.echo(f"\nDone! Output: {output_path}")


@cli.command()
def check():
    """Check if all dependencies are available."""
    click.echo("Checking dependencies...\n")

    # Check librosa
    try:
        import librosa
        click.echo(f"  librosa: OK ({librosa.__version__})")
    except ImportError:
        click.echo("  librosa: MISSING (pip install librosa)")

    # Check music21
    try:
        import music21
        click.echo(f"  music21: OK ({music21.__version__})")
    except ImportError:
        click.echo("  music21: MISSING (pip install music21), needed for --musicxml/--midi")


def main():
    cli()


if __name__ == '__main__':
    main()
