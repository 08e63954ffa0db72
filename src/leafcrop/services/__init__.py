"""Crop detection services: pixel statistics, edge detectors, skew and refinement."""
