import os
import uvicorn
import logging
from timecard_server.core.config import ServerConfig

# Configure logging for the main entry point
log_level = getattr(logging, ServerConfig.LOG_LEVEL.upper())
logging.basicConfig(level=log_level)
logger = logging.getLogger(__name__)

def ssl_files_available() -> bool:
    if not ServerConfig.SSL_CERT_FILE or not ServerConfig.SSL_KEY_FILE:
        return False
    if not os.path.exists(ServerConfig.SSL_CERT_FILE) or not os.path.exists(ServerConfig.SSL_KEY_FILE):
        logger.error("SSL certificate or key file not found, falling back to HTTP")
        return False
    return True

if __name__ == "__main__":
    # An import string is required for uvicorn to start more than one worker
    workers = ServerConfig.WORKERS if ServerConfig.WORKERS > 1 else None

    if ssl_files_available():
        logger.info(f"Starting HTTPS server on port {ServerConfig.PORT}...")
        logger.info(f"API Documentation: https://localhost:{ServerConfig.PORT}/docs")

        uvicorn.run(
            "timecard_server.main:app",
            host=ServerConfig.HOST,
            port=ServerConfig.PORT,
            ssl_keyfile=ServerConfig.SSL_KEY_FILE,
            ssl_certfile=ServerConfig.SSL_CERT_FILE,
            log_level=ServerConfig.LOG_LEVEL.lower(),
            workers=workers
        )
    else:
        logger.info(f"Starting HTTP server on port {ServerConfig.PORT}...")
        logger.info(f"API Documentation: http://localhost:{ServerConfig.PORT}/docs")

        uvicorn.run(
            "timecard_server.main:app",
            host=ServerConfig.HOST,
            port=ServerConfig.PORT,
            log_level=ServerConfig.LOG_LEVEL.lower(),
            workers=workers
        )
