"""Command line interface for spider-novel."""
