"""Run the API server: ``python -m api``."""

import uvicorn

from config import config


def main() -> None:
    uvicorn.run("api.main:app", host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
