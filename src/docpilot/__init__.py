"""DocPilot - conversational authoring of structured documents."""

__version__ = "0.1.0"
