"""Parsing of k6 JSON Lines output and HTML report generation."""
