"""FigureState: the per-figure visual + speech snapshot shared by every stage."""

from dataclasses import asdict, dataclass, replace

# Serialised key order (matches the exported JSON documents)
RECORD_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "text",
    "step",
    "motion",
    "expression",
    "model",
    "emotion",
)


@dataclass
class FigureState:
    """Latest known state of one figure; also the shape of an output record.

    ``emotion`` is never set by the parser; the tone classifier fills it.
    """

    id: str = ""
    model: str = ""
    motion: str = ""
    expression: str = ""
    name: str = ""
    text: str = ""
    step: int = 0
    emotion: str = ""

    def copy(self, **changes) -> "FigureState":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        data = asdict(self)
        return {key: data[key] for key in RECORD_FIELDS}

    @classmethod
    def from_dict(cls, data: dict) -> "FigureState":
        """Build from a serialised record; unknown keys are ignored."""
        return cls(
            id=str(data.get("id", "")),
            model=str(data.get("model", "")),
            motion=str(data.get("motion", "")),
            expression=str(data.get("expression", "")),
            name=str(data.get("name", "")),
            text=str(data.get("text", "")),
            step=int(data.get("step", 0)),
            emotion=str(data.get("emotion", "") or ""),
        )


def records_to_dicts(records: list[FigureState]) -> list[dict]:
    return [r.to_dict() for r in records]
