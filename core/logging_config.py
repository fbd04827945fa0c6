"""
Structlog 日志配置模块

Application services log billing decisions as event names with key/value
context, e.g. ``logger.info("invoice_finalized", invoice_id=..., total=...)``.
"""
import json
import logging
from typing import Any, List, Optional

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import Settings, settings


def _use_json(cfg: Settings) -> bool:
    if cfg.LOG_JSON is not None:
        return cfg.LOG_JSON
    return not cfg.DEBUG


def _log_level(cfg: Settings) -> int:
    if cfg.LOG_LEVEL:
        level = logging.getLevelName(cfg.LOG_LEVEL.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if cfg.DEBUG else logging.INFO


def get_renderer(cfg: Settings = settings) -> Any:
    """根据环境选择渲染器 (Console in DEBUG, JSON otherwise).
    注意：structlog 会向 serializer 传入 default/sort_keys 等参数，需要适配。
    """
    if not _use_json(cfg):
        return ConsoleRenderer(colors=True)

    def _dumps(obj, default=None, **kwargs):
        # datetimes/enums in billing events fall back to str
        return json.dumps(obj, ensure_ascii=False, default=default or str, **kwargs)

    return JSONRenderer(serializer=_dumps)


def configure_logging(cfg: Optional[Settings] = None) -> None:
    """配置 structlog 并桥接标准库 logging 到同一处理链。"""
    cfg = cfg or settings
    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_pre_chain,
            ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[
            ProcessorFormatter.remove_processors_meta,
            get_renderer(cfg),
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_log_level(cfg))


def billing_context(**context: Any):
    """Attach ids (customer_id, vendor_id, ...) to every log line emitted inside the block.

    Previously bound values are restored on exit; `None` values are not bound.
    """
    return bound_contextvars(**{k: v for k, v in context.items() if v is not None})


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取 structlog logger 实例。"""
    return structlog.get_logger(name)


# 初始化配置
configure_logging()
