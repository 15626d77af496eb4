from __future__ import annotations

import argparse
import os

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(prog="huepanel-server", description="Run the huepanel status panel backend")
    parser.add_argument("--host", default=os.environ.get("HUEPANEL_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("HUEPANEL_PORT", "8765")))
    parser.add_argument("--log-level", default=os.environ.get("HUEPANEL_LOG_LEVEL", "info").lower())
    args = parser.parse_args()

    # Panel state lives in one process; a single worker only.
    uvicorn.run(
        "huepanel.server:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        workers=1,
    )


if __name__ == "__main__":
    main()
