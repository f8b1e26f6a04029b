import logging
import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


# ── column widths ─────────────────────────────────────────────────────────────
_W_SERIAL  = 6
_W_DATE    = 12
_W_TIME    = 10
_W_LEVEL   = 8
_W_UID     = 8
_W_EMAIL   = 28
_W_MODULE  = 30
_W_EVENT   = 48
_SEP       = " | "

_TOTAL_WIDTH = (
    _W_SERIAL + _W_DATE + _W_TIME + _W_LEVEL
    + _W_UID + _W_EMAIL + _W_MODULE + _W_EVENT
    + len(_SEP) * 7
)


class StructuredFileHandler(logging.FileHandler):
    """File handler that writes one fixed-width row per record.

    Column layout:
        Serial | Date | Time | Level | User ID | User Email | Module/Function | Event

    WARNING and above get the untruncated message (and traceback, if any)
    on the following lines.
    """

    def __init__(self, log_file_path: str):
        super().__init__(log_file_path, mode="a", encoding="utf-8")
        self.log_counter = self._get_next_serial_number()
        self._ensure_header_exists()

    # ── helpers ───────────────────────────────────────────────────────────────

    def _get_next_serial_number(self) -> int:
        try:
            if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
                with open(self.baseFilename, "r", encoding="utf-8") as f:
                    for line in reversed(f.readlines()):
                        parts = line.split(_SEP)
                        if parts and parts[0].strip().isdigit():
                            return int(parts[0].strip()) + 1
            return 1
        except OSError:
            return 1

    def _ensure_header_exists(self):
        if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
            return
        header = (
            f"{'#':<{_W_SERIAL}}"
            f"{_SEP}{'Date':<{_W_DATE}}"
            f"{_SEP}{'Time':<{_W_TIME}}"
            f"{_SEP}{'Level':<{_W_LEVEL}}"
            f"{_SEP}{'User ID':<{_W_UID}}"
            f"{_SEP}{'User Email':<{_W_EMAIL}}"
            f"{_SEP}{'Module/Function':<{_W_MODULE}}"
            f"{_SEP}{'Event':<{_W_EVENT}}"
        )
        with open(self.baseFilename, "w", encoding="utf-8") as f:
            f.write("=" * _TOTAL_WIDTH + "\n")
            f.write(f"{'KAMDHENUSEVA API :: OPERATION LOG':^{_TOTAL_WIDTH}}\n")
            f.write("=" * _TOTAL_WIDTH + "\n")
            f.write(header + "\n")
            f.write("-" * _TOTAL_WIDTH + "\n")

    # ── emit ──────────────────────────────────────────────────────────────────

    def emit(self, record: logging.LogRecord):
        try:
            dt = datetime.fromtimestamp(record.created)
            module_func = f"{record.module}.{record.funcName}"

            # User context (set via extra={} on the logger call, or "-" if absent)
            uid   = str(getattr(record, "user_id",    "-") or "-")
            email = str(getattr(record, "user_email", "-") or "-")

            full_msg = record.getMessage()
            preview = full_msg
            if len(preview) > _W_EVENT:
                preview = preview[:_W_EVENT - 3] + "..."

            line = (
                f"{self.log_counter:<{_W_SERIAL}}"
                f"{_SEP}{dt.strftime('%Y-%m-%d'):<{_W_DATE}}"
                f"{_SEP}{dt.strftime('%H:%M:%S'):<{_W_TIME}}"
                f"{_SEP}{record.levelname:<{_W_LEVEL}}"
                f"{_SEP}{uid:<{_W_UID}}"
                f"{_SEP}{email:<{_W_EMAIL}}"
                f"{_SEP}{module_func:<{_W_MODULE}}"
                f"{_SEP}{preview:<{_W_EVENT}}"
            )

            indent = " " * (_W_SERIAL + len(_SEP))
            with open(self.baseFilename, "a", encoding="utf-8") as f:
                f.write(line + "\n")

                if record.levelno >= logging.WARNING:
                    if len(full_msg) > _W_EVENT:
                        f.write(f"{indent}Details: {full_msg}\n")
                    if record.exc_info:
                        tb = "".join(traceback.format_exception(*record.exc_info))
                        f.write(f"{indent}Exception: {tb}\n")

                if record.levelno >= logging.ERROR:
                    f.write("-" * _TOTAL_WIDTH + "\n")

            self.log_counter += 1
        except Exception:
            self.handleError(record)


# ── setup ─────────────────────────────────────────────────────────────────────

def setup_file_logging(log_level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured file + console logging.

    File handler records WARNING and above (to reduce noise).
    Console handler uses *log_level*.
    """
    if log_file is None:
        from seva.core.config import settings
        log_file = settings.LOG_FILE

    log_file_path = Path(log_file)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = StructuredFileHandler(str(log_file_path))
    file_handler.setLevel(logging.WARNING)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)

    file_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    logging.basicConfig(level=log_level, handlers=[file_handler, console_handler], force=True)

    logger = logging.getLogger(__name__)
    logger.warning(
        "Kamdhenuseva API SESSION STARTED at %s",
        datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
    )
    return logger


# ── helpers for callers ───────────────────────────────────────────────────────

def user_context(user=None, *, user_id: Optional[int] = None, email: Optional[str] = None) -> dict:
    """Build the ``extra`` mapping the structured handler reads.

    ``logger.warning("[Auth] bad password", extra=user_context(user))``
    """
    if user is not None:
        user_id = user_id or getattr(user, "user_number", None) or getattr(user, "id", None)
        email = email or getattr(user, "email", None)
    return {"user_id": user_id or "-", "user_email": email or "-"}
