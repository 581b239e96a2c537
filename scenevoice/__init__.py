"""scenevoice — scene-script dialogue extraction for voice production."""

__version__ = "0.1.0"
