"""Utility helpers for statewire core."""
