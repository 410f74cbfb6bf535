"""Main entrypoint for the Clarity API.

Builds the application from environment settings; a missing ``DATABASE_URL`` or
``JWT_SECRET`` stops the server here, before it accepts requests.
"""

from clarity.core.settings import get_settings
from clarity.main import create_app

app = create_app(get_settings())


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
