"""Bounding rectangles, descriptors, graph vertices, tri-grid terrain modelling and curved-voxel clustering for point clouds."""

__version__ = "0.1.0"