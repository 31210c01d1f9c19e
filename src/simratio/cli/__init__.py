"""Command-line interface for simratio."""
