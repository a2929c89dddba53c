"""Cleaning utilities for the pipeline.

Provides the Clean view over financial figures (fixed-precision money and a
derived gross margin %), Pydantic validation of clean rows, and the data
inspection checks that surface anomalies without correcting them.
"""
