"""storyloom - authoring and playback toolkit for branching interactive fiction."""

__version__ = "0.1.0"
