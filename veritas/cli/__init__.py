"""CLI module for veritas."""
