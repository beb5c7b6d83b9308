import argparse

import uvicorn
from dotenv import load_dotenv

from app.config import config
from app.config.uvicorn import load_uvicorn_config
from app.utils.logger import configure_logging

load_dotenv()

configure_logging(config.LOG_LEVEL)

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the Cloud Drive backend")
    parser.add_argument("--reload", action="store_true", help="Enable hot reloading")
    args = parser.parse_args()

    config_kwargs = load_uvicorn_config(args)
    server = uvicorn.Server(uvicorn.Config(**config_kwargs))

    server.run()
