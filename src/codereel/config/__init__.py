"""Workspace configuration commands."""
