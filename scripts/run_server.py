"""Script to launch the Delegate chat proxy."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn

# Ensure src/ is on sys.path (so imports work when run directly)
SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from delegate_server.config import load_config  # noqa: E402
from delegate_server.server import create_app  # noqa: E402

logger = logging.getLogger("delegate.run_server")


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    cfg = load_config()
    server_cfg = cfg.get("server", {})

    parser = argparse.ArgumentParser(description="Run the Delegate chat proxy.")
    parser.add_argument(
        "--host",
        type=str,
        default=server_cfg.get("host", "127.0.0.1"),
        help="Host to bind the server to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(server_cfg.get("port", 3000)),
        help="Port to bind the server to (default: $PORT or 3000)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        help="uvicorn log level (default: info)",
    )
    args = parser.parse_args()

    app = create_app(cfg=cfg)
    logger.info("Delegate AI Assistant running at http://%s:%s", args.host, args.port)
    if not cfg.get("upstream", {}).get("api_key"):
        logger.warning("OPENROUTER_API_KEY not set; get a key at https://openrouter.ai/keys")

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
