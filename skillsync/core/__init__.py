"""Scoring, detection, diff and sync engines."""
