import os

import uvicorn

from dropsim_api.server.app_factory import create_app

# Expose app at module level for tests and ASGI servers
app = create_app()


def run():
    """Creates and runs the FastAPI application."""
    host = os.environ.get("DROPSIM_HOST", "127.0.0.1")
    port = int(os.environ.get("DROPSIM_PORT", 8000))
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    run()
