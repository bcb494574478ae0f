"""Unit tests for the save/restore pipelines and their building blocks."""
