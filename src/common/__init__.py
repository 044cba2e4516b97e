"""Shared infrastructure: transport and logging helpers."""
