"""deploymap: resource graph and deployment manifest compiler."""

__version__ = "0.3.0"
