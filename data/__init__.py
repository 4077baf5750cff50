"""Synthetic data generation for the bills engine."""
