"""Benchmark pipeline stages."""
