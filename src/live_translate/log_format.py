import logging

RESET = "\033[0m"
DIM = "\033[2m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
MAGENTA = "\033[35m"

LEVEL_COLORS = {
    logging.DEBUG: DIM,
    logging.INFO: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED + BOLD,
}

HIGHLIGHTS = (
    ("Session:", BOLD + CYAN),
    ("Committed:", CYAN),
    ("Translation:", BOLD + GREEN),
    ("Partial:", DIM),
    ("Realtime connection open", MAGENTA),
    ("Realtime connection closed", MAGENTA),
)


class ColoredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, "")
        level = record.levelname
        time = self.formatTime(record, self.datefmt)
        name = record.name.split(".")[-1]
        msg = record.getMessage()

        for marker, style in HIGHLIGHTS:
            if marker in msg:
                msg = f"{style}{msg}{RESET}"
                break
        else:
            if record.levelno == logging.DEBUG:
                msg = f"{DIM}{msg}{RESET}"
            elif record.levelno >= logging.WARNING:
                msg = f"{color}{msg}{RESET}"

        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"

        return f"{DIM}{time}{RESET} {color}{level:<5}{RESET} {DIM}{name:<20}{RESET} {msg}"
