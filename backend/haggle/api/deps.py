"""
Shared FastAPI dependencies.

WHAT: Access to the engine container for request handlers
WHY: Handlers stay free of globals and are easy to test with a custom engine
HOW: The container lives on app.state, set during application startup
"""

from fastapi import Request

from ..core.engine import EngineContainer


def get_engine(request: Request) -> EngineContainer:
    """Engine container for the running app."""
    return request.app.state.engine
