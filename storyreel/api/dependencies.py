"""
FastAPI dependencies shared by the routers.
"""

from fastapi import Request

from storyreel.services import Services


def get_services(request: Request) -> Services:
    """Return the service graph built for this application instance"""
    return request.app.state.services
