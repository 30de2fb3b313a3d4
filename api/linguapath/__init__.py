"""LinguaPath API - lesson access control and progress tracking."""
