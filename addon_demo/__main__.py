"""Entry point for python -m addon_demo (the web process type)."""

import uvicorn

from .config import settings
from .log import configure_logging
from .monitoring import init_apm


def main() -> None:
    """Run the web server."""
    configure_logging()
    # The agent has to be running before FastAPI is imported
    init_apm()

    from .api import app

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
