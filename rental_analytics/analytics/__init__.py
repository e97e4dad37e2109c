"""Comparison and aggregation over cached datasets."""
