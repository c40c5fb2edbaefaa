"""StudySlot: experiment lifecycle and session registration service."""

__version__ = "0.1.0"
