"""Command line interface for running the API server."""
import argparse
import asyncio
import logging
import signal

import uvicorn

from ..config import settings_conf
from ..database import init_db, close as db_close

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings_conf['log_level'], logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

server = None
should_exit = False

def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    global should_exit
    logger.info("Shutdown signal received. Cleaning up...")
    should_exit = True

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""

    def __init__(self, app_path: str = "gigs.api:app", host: str = "0.0.0.0", port: int = 8000):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level=settings_conf['log_level'].lower()
        )
        self.server = uvicorn.Server(self.config)

    async def run(self):
        """Run the server in a way that can be stopped."""
        await self.server.serve()

    async def stop(self):
        """Stop the server."""
        self.server.should_exit = True

async def main(host: str, port: int, force_recreate: bool = False):
    """Initialize the database and run the API server until a shutdown signal."""
    global server, should_exit

    try:
        signal.signal(signal.SIGINT, handle_shutdown)
        signal.signal(signal.SIGTERM, handle_shutdown)

        logger.info("Initializing database...")
        await init_db(force_recreate=force_recreate)

        server = UvicornServer(host=host, port=port)
        task = asyncio.create_task(server.run(), name="api")
        logger.info(f"API listening on {host}:{port}")

        while not should_exit:
            await asyncio.sleep(1)
            if task.done():
                exc = None if task.cancelled() else task.exception()
                if exc:
                    logger.error(f"Task {task.get_name()} failed with error: {exc}")
                break

        logger.info("Starting cleanup...")
        await server.stop()
        await task

    except Exception as e:
        logger.error(f"Fatal error: {e}")
    finally:
        logger.info("Closing database connections...")
        await db_close()
        logger.info("Cleanup complete.")

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the gigs marketplace API")
    parser.add_argument('--host', default=settings_conf['api_host'])
    parser.add_argument('--port', type=int, default=settings_conf['api_port'])
    parser.add_argument(
        '--force-recreate',
        action='store_true',
        help="Drop and recreate all tables before starting"
    )
    return parser.parse_args(argv)

if __name__ == "__main__":
    args = parse_args()
    asyncio.run(main(args.host, args.port, force_recreate=args.force_recreate))
