#!/usr/bin/env python3
"""End-to-end check of parse → export on the bundled sample scene."""

import sys
import tempfile
from pathlib import Path

repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

from scenevoice.exporter import FigureExporter
from scenevoice.pipeline import ScriptPipeline

SAMPLE_SCRIPT = repo_root / "examples" / "sample" / "scene.txt"

# (figure_id, name, step, motion, expression) expected from the sample
EXPECTED = [
    ("anon", "Anon", 5, "idle01", "smile"),
    ("soyo", "Soyo", 6, "idle02", "calm"),
    ("anon", "Anon", 7, "idle01", "smile"),
    ("anon", "Anon", 9, "sigh", "tired"),
    ("soyo", "Soyo", 12, "idle02", "calm"),
]


def main() -> None:
    with tempfile.TemporaryDirectory(prefix="scenevoice-verify-") as tmp:
        out_dir = Path(tmp)
        print(f"▶  Running pipeline on {SAMPLE_SCRIPT.name} …")
        summary = ScriptPipeline(SAMPLE_SCRIPT, out_dir).run()

        if summary["status"] != "completed":
            print("FAIL  pipeline did not complete:")
            for err in summary["errors"]:
                print(f"  ✗ {err}")
            sys.exit(1)

        exporter = FigureExporter(out_dir)
        records = sorted(
            (r for fid in exporter.list_figure_files() for r in exporter.read_figure_file(fid)),
            key=lambda r: r.step,
        )
        actual = [(r.id, r.name, r.step, r.motion, r.expression) for r in records]

        if actual != EXPECTED:
            print("\nFAIL  records differ from expectation:")
            for row in actual:
                print(f"  got      {row}")
            for row in EXPECTED:
                print(f"  expected {row}")
            sys.exit(1)

        print("\nPASS  sample scene verified:")
        for r in records:
            print(f"  ✓ step {r.step:>2}  {r.id:<5} {r.name}: {r.text}")


if __name__ == "__main__":
    main()
