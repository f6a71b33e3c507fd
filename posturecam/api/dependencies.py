"""
Shared FastAPI dependencies.
"""
from fastapi import HTTPException, Request

from posturecam.session.controller import SessionController


def get_controller(request: Request) -> SessionController:
    """Return the session controller created by the application lifespan."""
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Session controller not initialized")
    return controller
