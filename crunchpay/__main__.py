"""
Serve the checkout API.

    python -m crunchpay --host 0.0.0.0 --port 8000
"""

import argparse

import uvicorn

from crunchpay.api import create_app
from crunchpay.config import Settings, configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(prog="crunchpay")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
