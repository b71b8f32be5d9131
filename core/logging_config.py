import logging
from datetime import datetime, timezone, timedelta

class OffsetFormatter(logging.Formatter):
    """Formatter that renders timestamps at a fixed UTC offset."""

    def __init__(self, fmt: str, utc_offset_hours: int = 0):
        super().__init__(fmt=fmt)
        self.tz = timezone(timedelta(hours=utc_offset_hours))
        self.label = f"UTC{utc_offset_hours:+d}" if utc_offset_hours else "UTC"

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone(self.tz)
        return f"{dt.strftime('%Y-%m-%d %H:%M:%S')} {self.label}"

    def format(self, record: logging.LogRecord) -> str:
        # Extract just the module name from the dotted path
        record.name = record.name.split('.')[-1]
        return super().format(record)

def setup_logging(level: str = "INFO", utc_offset_hours: int = 0) -> None:
    formatter = OffsetFormatter(
        fmt="[%(levelname)s] %(asctime)s | %(name)s | %(message)s",
        utc_offset_hours=utc_offset_hours
    )

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    # Configure console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    # Remove existing handlers and add our custom handler
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # Set specific log levels for noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
