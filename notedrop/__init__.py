"""NoteDrop - capture notes, deliver them reliably, dictate them live."""

__version__ = "0.1.0"
