"""Reference-audio catalogue for voice cloning.

Layout (the only one recognised):

    <root>/<model>/<audio_id>/<tone>/<clip>.wav

Tones without audio clips are dropped, models without any tone are dropped,
and unreadable sub-directories are skipped.
"""

import json
import logging
import os
from pathlib import Path

from .validator import validate_document

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".ogg", ".flac", ".m4a", ".aac"}
)


def is_audio_file(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in AUDIO_EXTENSIONS


def _entries(path: Path) -> list[Path]:
    """Sorted directory entries; OSError propagates to the caller."""
    return sorted(path.iterdir(), key=lambda p: p.name)


def _subdirs(path: Path) -> list[Path]:
    return [p for p in _entries(path) if p.is_dir()]


def _audio_paths(tone_dir: Path) -> list[dict]:
    return [
        {"path": p.resolve().as_posix()}
        for p in _entries(tone_dir)
        if p.is_file() and is_audio_file(p.name)
    ]


def _collect_tones(audio_dir: Path) -> list[dict]:
    tones: list[dict] = []
    for tone_dir in _subdirs(audio_dir):
        try:
            paths = _audio_paths(tone_dir)
        except OSError as exc:
            logger.warning("skipping unreadable tone dir %s: %s", tone_dir, exc)
            continue
        if paths:
            tones.append({"tone": tone_dir.name, "paths": paths})
    return tones


def build_reference_audio_list(root: str | Path) -> list[dict]:
    """Scan *root* and return the catalogue's ``models`` list.

    Raises:
        FileNotFoundError / OSError: If *root* itself cannot be read.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise FileNotFoundError(f"Reference audio directory not found: {root_path}")

    models: list[dict] = []
    for model_dir in _subdirs(root_path):
        subdirs: list[dict] = []
        try:
            audio_dirs = _subdirs(model_dir)
        except OSError as exc:
            logger.warning("skipping unreadable model dir %s: %s", model_dir, exc)
            continue
        for audio_dir in audio_dirs:
            try:
                tones = _collect_tones(audio_dir)
            except OSError as exc:
                logger.warning("skipping unreadable audio dir %s: %s", audio_dir, exc)
                continue
            if tones:
                subdirs.append({"audioid": audio_dir.name, "tones": tones})
        if subdirs:
            models.append({"model": model_dir.name, "subdirs": subdirs})
    return models


def list_reference_audio(root: str | Path) -> dict:
    """Return the full ``{"models": [...]}`` document, schema-validated."""
    document = {"models": build_reference_audio_list(root)}
    validate_document(document, "ReferenceAudioList")
    return document


def save_reference_audio_list(root: str | Path, output_path: str | Path) -> Path:
    """Scan *root* and write the catalogue to *output_path* (parents created)."""
    document = list_reference_audio(root)
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    return out


def find_reference_clips(document: dict, model: str, tone: str) -> list[str]:
    """All clip paths for *model* in *tone*, across every audio id."""
    clips: list[str] = []
    for entry in document.get("models", []):
        if entry["model"] != model:
            continue
        for subdir in entry["subdirs"]:
            for tone_entry in subdir["tones"]:
                if tone_entry["tone"] == tone:
                    clips.extend(p["path"] for p in tone_entry["paths"])
    return clips
