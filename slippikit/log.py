import logging
import os


_old_factory = logging.getLogRecordFactory()

_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[41m",
}


def record_factory(*args, **kwargs):
    record = _old_factory(*args, **kwargs)
    color = _LEVEL_COLORS.get(record.levelno, "")
    record.levelname_colored = f"{color}{record.levelname}\x1b[0m" if color else record.levelname

    return record


logging.setLogRecordFactory(record_factory)
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "WARNING").upper(),
    format="%(levelname_colored)s: %(name)s: %(message)s",
)
log = logging.getLogger("slippikit")
