"""ScriptPipeline: script file → per-figure documents → optional tone labels.

Stages run in order: parse, export, classify.  Parse and export failures stop
the run; classification failures are recorded per figure file and the loop
moves on to the next file.
"""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exporter import SUMMARY_FILENAME, FigureExporter
from .parser import parse_lines
from .records import FigureState
from .tone import ToneClassifier

logger = logging.getLogger(__name__)


def read_script_lines(path: str | Path) -> list[str]:
    """Read a UTF-8 script (BOM tolerated) and split it on '\\n' only.

    Every element keeps its raw position, so the list index is the step.

    Raises:
        FileNotFoundError: If the script does not exist.
    """
    script_path = Path(path)
    if not script_path.is_file():
        raise FileNotFoundError(f"Script file not found: {script_path}")
    return script_path.read_text(encoding="utf-8-sig").split("\n")


def parse_script_file(path: str | Path) -> list[FigureState]:
    return parse_lines(read_script_lines(path)).records


def classify_figure_files(
    exporter: FigureExporter,
    classifier: ToneClassifier,
    figure_ids: Optional[list[str]] = None,
) -> list[dict]:
    """Label each figure document in place; one result dict per file.

    A failing file is reported and skipped; the remaining files still run.
    """
    results: list[dict] = []
    for figure_id in figure_ids if figure_ids is not None else exporter.list_figure_files():
        started = time.monotonic()
        try:
            records = exporter.read_figure_file(figure_id)
            classifier.classify(records)
            exporter.write_figure_file(figure_id, records)
            results.append(
                {
                    "figure_id": figure_id,
                    "status": "completed",
                    "record_count": len(records),
                    "labelled_count": sum(1 for r in records if r.emotion),
                    "duration_sec": round(time.monotonic() - started, 6),
                    "error": None,
                }
            )
        except Exception as exc:
            error_msg = f"{type(exc).__name__}: {exc}"
            logger.warning("classification failed for %s: %s", figure_id, error_msg)
            results.append(
                {
                    "figure_id": figure_id,
                    "status": "failed",
                    "record_count": 0,
                    "labelled_count": 0,
                    "duration_sec": round(time.monotonic() - started, 6),
                    "error": error_msg,
                }
            )
    return results


class ScriptPipeline:
    """Runs parse → export → classify for one script into one output directory.

    Writes run_summary.json into out_dir whether the run succeeds or not.

    Status
    ------
    completed   every stage and every figure file succeeded
    partial     parse + export succeeded, one or more figure files failed
    failed      parse or export raised
    """

    def __init__(
        self,
        script_path: str | Path,
        out_dir: str | Path,
        classifier: Optional[ToneClassifier] = None,
    ) -> None:
        self.script_path = Path(script_path)
        self.out_dir = Path(out_dir)
        self.classifier = classifier
        self.exporter = FigureExporter(self.out_dir)
        self.records: list[FigureState] = []

    def _stage(self, name: str, fn) -> tuple[dict, object]:
        started = time.monotonic()
        try:
            value = fn()
        except Exception as exc:
            error_msg = f"{type(exc).__name__}: {exc}"
            return (
                {
                    "name": name,
                    "status": "failed",
                    "duration_sec": round(time.monotonic() - started, 6),
                    "error": error_msg,
                },
                None,
            )
        return (
            {
                "name": name,
                "status": "completed",
                "duration_sec": round(time.monotonic() - started, 6),
                "error": None,
            },
            value,
        )

    def run(self) -> dict:
        """Execute all stages and return the run summary dict."""
        started_at = datetime.now(timezone.utc).isoformat()
        stages: list[dict] = []
        errors: list[str] = []
        figures: list[dict] = []
        overall_status = "completed"

        result, records = self._stage("parse", lambda: parse_script_file(self.script_path))
        stages.append(result)
        if result["error"] is None:
            self.records = records
            logger.info("parsed %d dialogue record(s) from %s", len(records), self.script_path)
            result, _ = self._stage(
                "export",
                lambda: self.exporter.export(self.records, source=str(self.script_path)),
            )
            stages.append(result)

        if result["error"] is not None:
            errors.append(result["error"])
            overall_status = "failed"
        elif self.classifier is not None:
            result, figures = self._stage(
                "classify",
                lambda: classify_figure_files(self.exporter, self.classifier),
            )
            stages.append(result)
            figures = figures or []
            if result["error"] is not None:
                errors.append(result["error"])
                overall_status = "failed"
            for fig in figures:
                if fig["error"]:
                    errors.append(f"{fig['figure_id']}: {fig['error']}")
                    overall_status = "partial"

        summary: dict = {
            "script_path": str(self.script_path),
            "out_dir": str(self.out_dir),
            "started_at": started_at,
            "completed_at": datetime.now(timezone.utc).isoformat(),
            "status": overall_status,
            "record_count": len(self.records),
            "stages": stages,
            "figures": figures,
            "errors": errors,
        }
        self.out_dir.mkdir(parents=True, exist_ok=True)
        (self.out_dir / SUMMARY_FILENAME).write_text(
            json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        return summary
