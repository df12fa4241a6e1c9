"""Data models for skills, analysis results and sync state."""
