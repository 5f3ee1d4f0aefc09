"""FastAPI dependencies shared by the domain routers"""
from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from ambulance_dispatch.container import DispatchContainer


def get_container(request: Request) -> "DispatchContainer":
    """Container built by create_app and attached to the application state"""
    return request.app.state.container
