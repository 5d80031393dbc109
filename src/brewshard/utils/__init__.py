"""Shared utilities for brewshard."""
