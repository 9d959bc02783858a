import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Install one stream handler on the root logger (idempotent)."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_trust_diag", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._trust_diag = True  # type: ignore[attr-defined]
        root.addHandler(handler)
