"""Run the messenger service under uvicorn."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from messenger.api import create_fastapi_app
from messenger.logging_config import setup_logging


def main():
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    app = create_fastapi_app()

    # log_config=None keeps uvicorn on our JSON handlers
    uvicorn.run(
        app,
        host=os.getenv("API_HOST", "localhost"),
        port=int(os.getenv("API_PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
