"""Multi-cluster service DNS answering, tunnel agent options, subnet parsing and EndpointSlice accounting."""

__version__ = "0.1.0"