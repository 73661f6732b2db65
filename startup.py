import os
import sys
import uvicorn
import logging
import traceback

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# Add the src directory to Python path
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

logger.info("=" * 60)
logger.info("MedConnect Backend Startup")
logger.info("=" * 60)
logger.info(f"Python version: {sys.version.split()[0]}")
logger.info(f"Source path: {src_path}")

# Log critical environment variables (without exposing secrets)
logger.info("Environment Configuration:")
logger.info(f"  PORT: {os.environ.get('PORT', '8000')}")
logger.info(f"  APP_ENV: {os.environ.get('APP_ENV', 'not set')}")
logger.info(f"  MONGO_URI: {'✅ set' if os.environ.get('MONGO_URI') else '❌ not set'}")
logger.info(f"  MONGO_DB_NAME: {os.environ.get('MONGO_DB_NAME', 'not set')}")
logger.info(f"  MAIL_BACKEND: {os.environ.get('MAIL_BACKEND', 'log')}")
if os.environ.get('SECURITY_SECRET_KEY'):
    key_len = len(os.environ['SECURITY_SECRET_KEY'])
    logger.info(f"  SECURITY_SECRET_KEY length: {key_len} chars {'✅' if key_len >= 32 else '❌ (must be >= 32)'}")
else:
    logger.info("  SECURITY_SECRET_KEY: ⚠️  not set (using default)")

if __name__ == "__main__":
    try:
        from medconnect.core.config import get_settings

        # Loading settings first surfaces validation errors before the server starts
        try:
            settings = get_settings()
        except ValueError as ve:
            logger.error(f"❌ Configuration validation failed: {ve}")
            logger.error(traceback.format_exc())
            logger.error("Common configuration issues:")
            logger.error("  1. SECURITY_SECRET_KEY must be >= 32 characters")
            logger.error("  2. MONGO_URI must start with mongodb:// or mongodb+srv://")
            logger.error("  3. MAIL_BACKEND must be 'log' or 'smtp'")
            sys.exit(1)

        port = int(os.environ.get("PORT", settings.port))
        host = os.environ.get("HOST", settings.host)
        logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.app_env}) on {host}:{port}")

        uvicorn.run(
            "medconnect.app:app",
            host=host,
            port=port,
            reload=settings.is_development and settings.debug,
            log_level=settings.logging.level.lower(),
            access_log=True,
            timeout_keep_alive=75,
            timeout_graceful_shutdown=30,
        )
    except KeyboardInterrupt:
        logger.info("⚠️  Shutting down due to keyboard interrupt")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ CRITICAL: Failed to start application: {type(e).__name__}: {e}")
        logger.error(traceback.format_exc())
        sys.exit(1)
