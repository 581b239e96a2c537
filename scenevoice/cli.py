"""Click CLI entrypoint for scenevoice."""

import json
import logging
import sys
from pathlib import Path

import click

from .config import load_classifier_config, load_tts_backend_config
from .exporter import FigureExporter
from .language import UNKNOWN, detect_language
from .pipeline import ScriptPipeline, classify_figure_files, parse_script_file
from .records import records_to_dicts
from .reference_audio import list_reference_audio, save_reference_audio_list
from .tone import ToneClassifier
from .tts import DEFAULT_BASE_URL, TTSClient, TTSRequest, launch_backend


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """scenevoice — scene-script dialogue extraction for voice production."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("parse")
@click.option(
    "--script", "script_path", required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to the scene script",
)
@click.option(
    "--out", "out_file", default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Write the record list here instead of stdout",
)
def parse_command(script_path: str, out_file: str | None) -> None:
    """Parse a script and emit its ordered dialogue records as JSON."""
    records = parse_script_file(script_path)
    payload = json.dumps(records_to_dicts(records), indent=2, ensure_ascii=False)
    if out_file is None:
        click.echo(payload)
        return
    Path(out_file).write_text(payload, encoding="utf-8")
    click.echo(f"Wrote {len(records)} record(s) to {out_file}")


@cli.command("export")
@click.option(
    "--script", "script_path", required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to the scene script",
)
@click.option(
    "--out", "out_dir", default="./figures_output", show_default=True,
    help="Directory for the per-figure JSON files",
)
def export_command(script_path: str, out_dir: str) -> None:
    """Parse a script and write one JSON file per figure."""
    records = parse_script_file(script_path)
    index = FigureExporter(out_dir).export(records, source=str(Path(script_path).resolve()))
    for entry in index["figures"]:
        click.echo(f"  ✓  {entry['path']:<32} {entry['record_count']} record(s)")
    click.echo(f"Exported {len(index['figures'])} figure file(s) to {Path(out_dir).resolve()}")


@cli.command("classify")
@click.option(
    "--figures", "figures_dir", required=True,
    type=click.Path(exists=True, file_okay=False, readable=True),
    help="Directory of per-figure JSON files",
)
@click.option(
    "--config", "config_path", required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Tone classifier config JSON",
)
def classify_command(figures_dir: str, config_path: str) -> None:
    """Label every figure file with tone/emotion, file by file."""
    config = load_classifier_config(config_path)
    with ToneClassifier(config) as classifier:
        results = classify_figure_files(FigureExporter(figures_dir), classifier)

    failed = 0
    for result in results:
        if result["error"]:
            failed += 1
            click.echo(f"  ✗  {result['figure_id']:<32} FAILED — {result['error']}", err=True)
        else:
            click.echo(
                f"  ✓  {result['figure_id']:<32} "
                f"{result['labelled_count']}/{result['record_count']} labelled"
            )
    if failed:
        sys.exit(1)


@cli.command("run")
@click.option(
    "--script", "script_path", required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to the scene script",
)
@click.option(
    "--out", "out_dir", default="./figures_output", show_default=True,
    help="Output directory (figure files + run_summary.json)",
)
@click.option(
    "--config", "config_path", default=None,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Tone classifier config JSON; classification is skipped without it",
)
def run_command(script_path: str, out_dir: str, config_path: str | None) -> None:
    """Parse, export and (optionally) classify a script in one pass."""
    classifier = None
    if config_path is not None:
        classifier = ToneClassifier(load_classifier_config(config_path))

    try:
        summary = ScriptPipeline(script_path, out_dir, classifier=classifier).run()
    finally:
        if classifier is not None:
            classifier.close()

    for stage in summary["stages"]:
        if stage["status"] == "completed":
            click.echo(f"  ✓  {stage['name']:<12} completed  ({stage['duration_sec']:.3f}s)")
        else:
            click.echo(f"  ✗  {stage['name']:<12} FAILED — {stage['error']}")

    click.echo()
    if summary["status"] == "completed":
        click.echo(f"✅  {summary['record_count']} record(s) → {Path(out_dir).resolve()}")
        return
    click.echo(f"❌  Run {summary['status'].upper()}")
    for err in summary["errors"]:
        click.echo(f"    Error: {err}", err=True)
    sys.exit(1)


@cli.command("reference-audio")
@click.option(
    "--root", "root_dir", default="./reference_audio", show_default=True,
    type=click.Path(exists=True, file_okay=False, readable=True),
    help="Root of <model>/<audio_id>/<tone>/ clip folders",
)
@click.option(
    "--out", "out_file", default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Write the catalogue here instead of stdout",
)
def reference_audio_command(root_dir: str, out_file: str | None) -> None:
    """Catalogue reference audio clips by model, audio id and tone."""
    if out_file is None:
        click.echo(json.dumps(list_reference_audio(root_dir), indent=2, ensure_ascii=False))
        return
    path = save_reference_audio_list(root_dir, out_file)
    click.echo(f"Wrote reference audio list to {path}")


@cli.command("speak")
@click.option("--text", required=True, help="Text to synthesise")
@click.option(
    "--ref-audio", "ref_audio", required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Reference clip for the voice",
)
@click.option("--prompt-lang", required=True, help="Language of the reference clip")
@click.option("--prompt-text", default="", help="Transcript of the reference clip")
@click.option(
    "--text-lang", default=None,
    help="Language of --text (default: detected from the text)",
)
@click.option("--base-url", default=DEFAULT_BASE_URL, show_default=True, help="TTS backend URL")
@click.option(
    "--out", "out_file", required=True,
    type=click.Path(dir_okay=False, writable=True),
    help="Where to write the audio",
)
def speak_command(
    text: str,
    ref_audio: str,
    prompt_lang: str,
    prompt_text: str,
    text_lang: str | None,
    base_url: str,
    out_file: str,
) -> None:
    """Synthesise one line through a running TTS backend."""
    if text_lang is None:
        text_lang = detect_language(text)
        if text_lang == UNKNOWN:
            click.echo("Error: could not detect --text language; pass --text-lang", err=True)
            sys.exit(1)

    request = TTSRequest(
        text=text,
        text_lang=text_lang,
        ref_audio_path=str(Path(ref_audio).resolve()),
        prompt_lang=prompt_lang,
        prompt_text=prompt_text,
    )
    with TTSClient(base_url) as client:
        try:
            audio = client.synthesize(request)
        except RuntimeError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
    Path(out_file).write_bytes(audio)
    click.echo(f"Wrote {len(audio)} bytes to {out_file}")


@cli.command("launch-tts")
@click.option(
    "--config", "config_path", required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="TTS backend config JSON",
)
def launch_tts_command(config_path: str) -> None:
    """Start the GPT-SoVITS api_v2 server in the background."""
    config = load_tts_backend_config(config_path)
    try:
        process = launch_backend(config)
    except OSError as exc:
        click.echo(f"Error: failed to launch TTS backend: {exc}", err=True)
        sys.exit(1)
    click.echo(f"TTS backend started (pid={process.pid}) at {config.base_url}")
