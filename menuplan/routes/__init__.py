"""FastAPI routers mounted under ``/v1``."""
