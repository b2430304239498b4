import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from tool_agent.config.settings import Settings


logger = logging.getLogger("tool_agent")


class JsonFormatter(logging.Formatter):
    def __init__(self, redact_content: bool = False):
        super().__init__()
        self._redact = redact_content

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(cfg: Settings) -> logging.Logger:
    """把 JSON 行日志写到 cfg.log_dir/agent.log，重复调用不会叠加 handler。"""

    logger.setLevel(logging.INFO)
    # 终端留给对话本身
    logger.propagate = False
    for handler in list(logger.handlers):
        if getattr(handler, "_tool_agent", False):
            logger.removeHandler(handler)
            handler.close()

    log_dir = Path(cfg.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "agent.log", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter(redact_content=cfg.log_redact_content))
    fh._tool_agent = True  # type: ignore[attr-defined]
    logger.addHandler(fh)
    return logger


def log_event(level: int, message: str, **fields) -> None:
    logger.log(level, message, extra={"extra": fields})
