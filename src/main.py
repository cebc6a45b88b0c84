"""
Internship Matcher Main Entry Point

Initializes logging and configuration, checks the entity store
connection and starts the HTTP service.
"""

import sys


def main() -> int:
    """
    Main entry point for the Internship Matcher service.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        from src.utils.logger import setup_logging, log

        setup_logging()
        log.info("Starting Internship Matcher...")

        from src.utils.config import get_settings

        settings = get_settings()
        log.info(f"Environment: {settings.environment}")
        log.info(f"Vector store: {settings.vector_store.provider}")

        log.info("Initializing database connection...")
        from src.data.database import get_database_manager

        if get_database_manager().check_sync_connection():
            log.info("Database connection established")
        else:
            log.warning(
                "Could not connect to MongoDB. "
                "Embedding and matching requests will fail until it is reachable."
            )

        # The embedding model loads lazily on the first request
        import uvicorn

        from src.api import create_app

        uvicorn.run(
            create_app(),
            host=settings.api.host,
            port=settings.api.port,
            log_level=settings.logging.level.lower(),
        )
        get_database_manager().close_all()
        return 0

    except KeyboardInterrupt:
        print("\nApplication interrupted by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
