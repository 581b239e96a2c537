"""FigureExporter: per-figure JSON documents under one output directory."""

import json
import logging
import re
from pathlib import Path
from typing import Optional

from .records import FigureState, records_to_dicts
from .utils.hashing import hash_file_bytes, hash_records, short_hash
from .validator import validate_document

logger = logging.getLogger(__name__)

INDEX_FILENAME = "ExportIndex.json"
SUMMARY_FILENAME = "run_summary.json"

# Files living next to figure documents that are not figure documents
RESERVED_FILENAMES: frozenset[str] = frozenset({INDEX_FILENAME, SUMMARY_FILENAME})
_RESERVED_STEMS = frozenset(Path(name).stem.casefold() for name in RESERVED_FILENAMES)

# Ids used verbatim as file stems; a leading "_" is never produced by them
_PLAIN_STEM = re.compile(r"[^\W_][\w.-]*")
_UNSAFE_CHARS = re.compile(r"[^\w.-]")


def group_by_figure(records: list[FigureState]) -> dict[str, list[FigureState]]:
    """Group records by figure id, keeping first-seen id order and record order."""
    groups: dict[str, list[FigureState]] = {}
    for record in records:
        groups.setdefault(record.id, []).append(record)
    return groups


def figure_filename(figure_id: str) -> str:
    """File name for a figure document.

    Plain ids map to ``<id>.json``.  Any other id (path separators, a leading
    "_" or ".", a ".json" suffix, or a reserved name such as ``ExportIndex``)
    maps to ``_<sanitised id>-<hash>.json``, so distinct ids never share a
    file and no id reaches a reserved file.
    """
    if (
        _PLAIN_STEM.fullmatch(figure_id)
        and not figure_id.casefold().endswith(".json")
        and figure_id.casefold() not in _RESERVED_STEMS
    ):
        return f"{figure_id}.json"
    stem = _UNSAFE_CHARS.sub("_", figure_id)
    return f"_{stem}-{short_hash(figure_id)}.json"


class FigureExporter:
    """Reads and writes figure documents under out_dir.

    ExportIndex.json maps each figure id to the file it was written to; reads
    resolve ids through it first, then by file name.
    """

    def __init__(self, out_dir: str | Path) -> None:
        self.out_dir = Path(out_dir)

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def figure_path(self, figure_id: str) -> Path:
        return self.out_dir / figure_filename(figure_id)

    def index_path(self) -> Path:
        return self.out_dir / INDEX_FILENAME

    def _indexed_files(self) -> dict[str, str]:
        """figure_id → file name from ExportIndex.json ({} when absent)."""
        path = self.index_path()
        if not path.exists():
            return {}
        index = json.loads(path.read_text(encoding="utf-8-sig"))
        validate_document(index, "ExportIndex")
        return {entry["figure_id"]: Path(entry["path"]).name for entry in index["figures"]}

    def resolve_path(self, figure_id: str) -> Path:
        """Path of the document for *figure_id*.

        Order: the index entry, the escaped file name, then ``<figure_id>``
        (``.json`` appended when absent) for documents placed by hand.
        """
        indexed = self._indexed_files().get(figure_id)
        if indexed is not None:
            return self.out_dir / indexed
        path = self.figure_path(figure_id)
        if path.exists():
            return path
        name = figure_id if figure_id.endswith(".json") else f"{figure_id}.json"
        if name not in RESERVED_FILENAMES and Path(name).name == name:
            by_name = self.out_dir / name
            if by_name.exists():
                return by_name
        return path

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def _write(self, path: Path, records: list[FigureState]) -> Path:
        data = records_to_dicts(records)
        validate_document(data, "DialogueRecords")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("wrote %d record(s) to %s", len(data), path)
        return path

    def write_figure_file(self, figure_id: str, records: list[FigureState]) -> Path:
        """Validate and (re)write the document *figure_id* resolves to.

        Raises:
            jsonschema.ValidationError: If the records are schema-invalid.
        """
        return self._write(self.resolve_path(figure_id), records)

    def export(self, records: list[FigureState], source: Optional[str] = None) -> dict:
        """Write one document per figure plus ExportIndex.json; return the index.

        Raises:
            ValueError: If two figure ids map to the same file name.
        """
        self.out_dir.mkdir(parents=True, exist_ok=True)

        figures: list[dict] = []
        owners: dict[str, str] = {}
        for figure_id, group in group_by_figure(records).items():
            path = self.figure_path(figure_id)
            if path.name in owners:
                raise ValueError(
                    f"Figure ids {owners[path.name]!r} and {figure_id!r} "
                    f"both map to {path.name}"
                )
            owners[path.name] = figure_id
            self._write(path, group)
            figures.append(
                {
                    "figure_id": figure_id,
                    "path": path.name,
                    "sha256": hash_file_bytes(path),
                    "record_count": len(group),
                }
            )

        index: dict = {
            "schema_id": "ExportIndex",
            "schema_version": "1.0.0",
            "records_sha256": hash_records(records_to_dicts(records)),
            "figures": figures,
        }
        if source is not None:
            index["source"] = source
        validate_document(index, "ExportIndex")
        self.index_path().write_text(json.dumps(index, indent=2), encoding="utf-8")
        return index

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_figure_files(self) -> list[str]:
        """Sorted figure ids of every figure document in out_dir.

        Indexed files report the id they were exported under; other ``*.json``
        files report their stem.

        Raises:
            FileNotFoundError: If out_dir does not exist.
        """
        if not self.out_dir.is_dir():
            raise FileNotFoundError(f"Figure directory not found: {self.out_dir}")
        ids_by_file = {name: fid for fid, name in self._indexed_files().items()}
        return sorted(
            ids_by_file.get(p.name, p.stem)
            for p in self.out_dir.iterdir()
            if p.is_file() and p.suffix == ".json" and p.name not in RESERVED_FILENAMES
        )

    def read_figure_file(self, figure_id: str) -> list[FigureState]:
        """Load one figure document.

        Raises:
            FileNotFoundError: If the document does not exist.
            json.JSONDecodeError: If the file is not valid JSON.
            jsonschema.ValidationError: If the JSON is not a record list.
        """
        path = self.resolve_path(figure_id)
        if not path.exists():
            raise FileNotFoundError(f"Figure file not found: {path}")
        data = json.loads(path.read_text(encoding="utf-8-sig"))
        validate_document(data, "DialogueRecords")
        return [FigureState.from_dict(item) for item in data]
