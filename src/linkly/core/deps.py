"""Dependency injection utilities for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Request

from linkly.services.resolution import ResolutionService


def get_service(request: Request) -> ResolutionService:
    """Get the resolution service owned by the running application."""
    return request.app.state.service


# Type alias for dependency injection
Service = Annotated[ResolutionService, Depends(get_service)]
