"""NoteVault: personal markdown notes in a per-user folder tree."""

__version__ = "1.0.0"
