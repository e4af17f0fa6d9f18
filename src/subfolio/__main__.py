"""Run a subfolio server: ``python -m subfolio --port 8000``.

Settings come from ``SUBFOLIO_*`` environment variables or ``.env``.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from subfolio.api import create_app
from subfolio.core.config import SubfolioConfig


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="subfolio", description=__doc__)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)

    config = SubfolioConfig()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Starting subfolio with %s", config)
    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
