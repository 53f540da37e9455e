"""Application entry point for the document OCR API server."""

import uvicorn

from src.api.app import create_app
from src.utils.config import load_config
from src.utils.logger import setup_logging


def main(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
