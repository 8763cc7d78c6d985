"""Serve the family tree app.

Usage:
  python -m familytree --port 3000 --data-dir ./data
"""

from __future__ import annotations

import argparse
import logging
import os

import uvicorn


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Run the family tree web app")
    ap.add_argument("--host", default="0.0.0.0")
    ap.add_argument("--port", type=int, default=3000)
    ap.add_argument("--data-dir", help="Directory holding family.json (sets DATA_DIR)")
    ap.add_argument("--log-level", default=os.environ.get("FAMILYTREE_LOG_LEVEL", "INFO"))
    args = ap.parse_args(argv)

    if args.data_dir:
        os.environ["DATA_DIR"] = args.data_dir

    level = args.log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger(__name__).info("Family tree app running on http://%s:%d", args.host, args.port)

    uvicorn.run("familytree.main:app", host=args.host, port=args.port, log_level=level.lower())


if __name__ == "__main__":
    main()
