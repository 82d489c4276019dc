"""Plugins shipped with githooks, loaded by file path from this directory."""
