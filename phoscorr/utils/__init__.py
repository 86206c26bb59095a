"""Logging and progress-bar helpers."""
