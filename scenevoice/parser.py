"""DialogueParser: folds scene-script lines into an ordered dialogue record log.

Two line grammars share the figure id as key:

    changeFigure:<model> -id=<id> -motion=<motion> -expression=<expression>;
    <name>:<text> -figureId=<id>;

Figure-change directives update the per-figure state table; dialogue lines
merge the table entry with the spoken text and append a record.  Any line
that does not satisfy the grammar is dropped without error.
"""

import enum
import logging
import re
from collections.abc import Iterable
from typing import Optional

from .records import FigureState

logger = logging.getLogger(__name__)

FIGURE_CHANGE_PREFIX = "changeFigure:"
FIGURE_ID_PREFIX = "-figureId="

# Figure-change token prefix → FigureState field
_FIGURE_FIELDS: dict[str, str] = {
    FIGURE_CHANGE_PREFIX: "model",
    "-id=": "id",
    "-motion=": "motion",
    "-expression=": "expression",
}

# -figureId=A, -next, -fontSize=12 ... but not a lone "-" inside spoken text
_ATTRIBUTE_TOKEN = re.compile(r"^-[A-Za-z]")


class LineKind(enum.Enum):
    FIGURE_CHANGE = "figure_change"
    DIALOGUE = "dialogue"
    IGNORABLE = "ignorable"


class BuilderState(enum.Enum):
    START = "start"
    STREAMING = "streaming"
    DONE = "done"


def classify_line(line: str) -> tuple[LineKind, str]:
    """Return (kind, trimmed_line) for one raw script line. Never raises."""
    content = line.strip()
    if not content:
        return LineKind.IGNORABLE, content
    if content.startswith(FIGURE_CHANGE_PREFIX):
        return LineKind.FIGURE_CHANGE, content
    if FIGURE_ID_PREFIX in content:
        return LineKind.DIALOGUE, content
    return LineKind.IGNORABLE, content


def _tokenize(content: str) -> list[str]:
    """Strip one trailing ';' and split on whitespace."""
    if content.endswith(";"):
        content = content[:-1]
    return content.split()


def _split_payload(payload: str) -> tuple[str, str]:
    """Split 'name:text' on the first colon; no colon means text only."""
    name, sep, text = payload.partition(":")
    if not sep:
        return "", payload
    return name, text


class FigureStateTable:
    """Latest FigureState per figure id (last write wins)."""

    def __init__(self) -> None:
        self._states: dict[str, FigureState] = {}

    def get(self, figure_id: str) -> Optional[FigureState]:
        return self._states.get(figure_id)

    def put(self, state: FigureState) -> None:
        self._states[state.id] = state

    def __contains__(self, figure_id: object) -> bool:
        return figure_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def snapshot(self) -> dict[str, FigureState]:
        """Copy of the table, safe to hand to an exporter."""
        return {fid: state.copy() for fid, state in self._states.items()}


class DialogueParser:
    """Single-pass builder of the dialogue record sequence.

    Each instance owns its FigureStateTable and record list; nothing is
    shared between instances.  Feed lines in script order with their raw
    zero-based position as ``step``, then call :meth:`finish`.
    """

    def __init__(self) -> None:
        self.table = FigureStateTable()
        self.records: list[FigureState] = []
        self.state = BuilderState.START

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def feed(self, line: str, step: int) -> None:
        """Classify one line and dispatch it to the matching handler."""
        if self.state is BuilderState.DONE:
            raise RuntimeError("DialogueParser already finished; create a new parser")
        self.state = BuilderState.STREAMING

        kind, content = classify_line(line)
        if kind is LineKind.FIGURE_CHANGE:
            self._handle_figure_change(content, step)
        elif kind is LineKind.DIALOGUE:
            self._handle_dialogue(content, step)
        elif kind is LineKind.IGNORABLE:
            return
        else:  # pragma: no cover
            raise AssertionError(f"unhandled line kind: {kind!r}")

    def finish(self) -> list[FigureState]:
        """Mark the stream exhausted and return the ordered records."""
        self.state = BuilderState.DONE
        return self.records

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _handle_figure_change(self, content: str, step: int) -> None:
        tokens = _tokenize(content)
        if not any(t.startswith(("-motion=", "-expression=")) for t in tokens):
            logger.debug("step %d: figure change without motion/expression dropped", step)
            return

        fields: dict[str, str] = {}
        for token in tokens:
            for prefix, field in _FIGURE_FIELDS.items():
                if token.startswith(prefix):
                    fields[field] = token[len(prefix):]
                    break

        if not fields.get("id"):
            logger.debug("step %d: figure change without -id= dropped", step)
            return

        # Replaces, never merges with, the previous state for this id
        self.table.put(FigureState(step=step, **fields))

    def _handle_dialogue(self, content: str, step: int) -> None:
        tokens = _tokenize(content)
        if len(tokens) < 2:
            logger.debug("step %d: dialogue without attributes dropped", step)
            return

        figure_id = next(
            (t[len(FIGURE_ID_PREFIX):] for t in tokens if t.startswith(FIGURE_ID_PREFIX)),
            None,
        )
        if figure_id is None:
            logger.debug("step %d: dialogue without -figureId= dropped", step)
            return

        payload_tokens: list[str] = []
        for token in tokens:
            if _ATTRIBUTE_TOKEN.match(token):
                break
            payload_tokens.append(token)
        payload = " ".join(payload_tokens) if payload_tokens else tokens[0]
        name, text = _split_payload(payload)

        known = self.table.get(figure_id)
        if known is None:
            logger.debug("step %d: dialogue for unknown figure %r dropped", step, figure_id)
            return

        record = known.copy(text=text, step=step)
        if name:
            record.name = name
        self.table.put(record)
        # Append-only: a second line for the same id is a second record
        self.records.append(record.copy())


def parse_lines(lines: Iterable[str]) -> DialogueParser:
    """Fold every line (step = zero-based position) and return the finished parser."""
    parser = DialogueParser()
    for step, line in enumerate(lines):
        parser.feed(line, step)
    parser.finish()
    return parser


def parse_script_text(text: str) -> list[FigureState]:
    """Parse a whole script held in memory; lines are split on '\\n' only."""
    return parse_lines(text.split("\n")).records
