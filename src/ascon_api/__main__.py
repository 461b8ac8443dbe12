"""Entry point for the Ascon API."""
import os

import uvicorn

from ascon_lens.logs import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV, configure_logging


def main():
    """Start the API server."""
    configure_logging(os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL), json=True)
    uvicorn.run("ascon_api.api:app", host="127.0.0.1", port=8000, reload=True)


if __name__ == "__main__":
    main()
