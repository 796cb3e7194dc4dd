"""codereel: project interchange engine for animated code documents."""

__version__ = "0.4.0"
