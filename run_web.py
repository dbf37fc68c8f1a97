#!/usr/bin/env python
"""
Start the soil analysis HTTP API with uvicorn.
"""

import argparse
import logging
import os
import sys

import uvicorn

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Start the soil analysis API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_web.py                            # default settings
    python run_web.py --port 8080                # listen on 8080
    python run_web.py --store sqlite             # keep analyses in sqlite
    python run_web.py --reload                   # development mode
        """
    )

    parser.add_argument(
        '--host',
        type=str,
        default='0.0.0.0',
        help='bind address (default: 0.0.0.0)'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='port (default: FASTAPI_PORT or 8000)'
    )

    parser.add_argument(
        '--reload',
        action='store_true',
        help='reload on code changes'
    )

    parser.add_argument(
        '--store',
        type=str,
        choices=['memory', 'sqlite', 'disabled'],
        default=None,
        help='analysis store backend (default: ANALYSIS_STORE or memory)'
    )

    parser.add_argument(
        '--workers',
        type=int,
        default=1,
        help='worker processes (default: 1)'
    )

    args = parser.parse_args()

    if args.store:
        os.environ['ANALYSIS_STORE'] = args.store

    from soil_engine.infra.config import get_config

    cfg = get_config()
    port = args.port or cfg.fastapi_port
    display_host = args.host if args.host != '0.0.0.0' else 'localhost'

    logger.info(f"Starting soil analysis API: http://{display_host}:{port}")
    logger.info(f"Analysis store: {cfg.analysis_store}")
    logger.info(f"Default crop type: {cfg.default_crop_type}")
    logger.info(f"API docs: http://{display_host}:{port}/docs")

    uvicorn.run(
        "soil_engine.api.server:app",
        host=args.host,
        port=port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level="info"
    )


if __name__ == '__main__':
    main()
