"""TaskFlow API server: task store, projections and HTTP surface."""

__version__ = "0.1.0"
