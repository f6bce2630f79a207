"""CLI module for dgd."""
