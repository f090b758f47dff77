from loguru import logger
import os

from app.core.config import get_settings

LOG_DIR = get_settings().LOG_DIR

# Create folder if missing
if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR)

# Remove default handler
logger.remove()

# General application log
logger.add(
    f"{LOG_DIR}/app.log",
    rotation="1 week",
    retention="4 weeks",
    level="INFO",
    enqueue=True,
    format="{time} | {level} | {message}"
)


def _category_sink(log_type: str):
    logger.add(
        f"{LOG_DIR}/{log_type}s.log",
        rotation="1 week",
        retention="4 weeks",
        level="INFO",
        enqueue=True,
        filter=lambda record: record["extra"].get("log_type") == log_type,
        format="{time} | {level} | {message}"
    )


# Booking / payment / webhook / refund / admin logs
for _log_type in ("booking", "payment", "webhook", "refund", "admin"):
    _category_sink(_log_type)

# Error logs
logger.add(
    f"{LOG_DIR}/errors.log",
    rotation="1 week",
    retention="8 weeks",
    level="ERROR",
    enqueue=True,
)


def get_logger():
    return logger
