"""mindweave: mind map document model, auto layout and undo history."""

__version__ = "0.1.0"
