"""Data models for speck."""
