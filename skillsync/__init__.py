"""skillsync - rate agent skills and sync the best ones into every tool."""

__version__ = "1.0.0"
