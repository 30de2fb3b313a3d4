"""Embedded video players and progress tracking."""
