import asyncio
from config import Config, logger, setup_logging
from services.storage import close_storage, prepare_storage
from web import create_and_start_server

async def main():
    """
    Main entry point for the application.
    Prepares snapshot storage and serves the wizard API until interrupted.
    """
    setup_logging()

    # Validate configuration
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return

    await prepare_storage()
    runner = await create_and_start_server()

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        await close_storage()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down")
