"""Generate HTTP clients and FastAPI endpoints from exposed service contracts."""

__version__ = "0.1.0"
