"""API package: provides FastAPI dependencies and route definitions for the application."""

from .dependencies import Capability, authorize, get_current_user  # noqa: F401
from .routes import router  # noqa: F401
