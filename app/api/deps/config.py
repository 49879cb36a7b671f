from fastapi import Request

from app.core.config import Settings


def get_settings(request: Request) -> Settings:
    """Return the settings the running application was created with."""
    return request.app.state.settings
