"""Keyword-argument logging.

Keyword arguments passed to a log call are rendered alongside the message, and
`logger_context` adds key-value pairs to every log statement further down the
stack (this thread or task only) until the block exits:

```
logger = getLogger(__name__)
logger.info("override written", namespace="payments")
# 2024-05-01 10:01:16,826 info     thds.overlay.store (namespace=payments) override written
with logger_context(test="test_refunds"):
    logger.info("copied")
# 2024-05-01 10:01:16,827 info     thds.overlay.store (test=test_refunds) copied
```

If the root logger has no handlers when this module is imported, a console
handler with the compact formatter below is installed.
"""
import contextlib
import logging
import logging.config
import typing as ty
from copy import copy

from . import config
from .stack_context import StackContext

_cfg = config.in_module(__name__)
LOGLEVEL = _cfg("level", logging.INFO, parse=logging.getLevelName)
MAX_MODULE_NAME_LEN = _cfg("max_module_name_len", 40, parse=int)

_LOGGING_KWARGS = ("exc_info", "stack_info", "stacklevel", "extra")
# passed straight through to logging; every other keyword is context.

OVERLAY_REC_CTXT = "overlay_context"
# attribute name on LogRecords; usable as %(overlay_context)s in format strings.


class _OverlayContext(ty.Dict[str, ty.Any]):
    def __str__(self):
        return "(" + ",".join(map("%s=%s".__mod__, self.items())) + ")"


_LOG_CONTEXT: StackContext[_OverlayContext] = StackContext("OVERLAY_LOG_CONTEXT", _OverlayContext())


@contextlib.contextmanager
def logger_context(**kwargs) -> ty.Iterator[None]:
    with _LOG_CONTEXT.set(_OverlayContext(_LOG_CONTEXT(), **kwargs)):
        yield


def _embed_context_in_extra_kw(kwargs: ty.MutableMapping[str, ty.Any]) -> ty.MutableMapping[str, ty.Any]:
    context = _LOG_CONTEXT()
    context_keys = [k for k in kwargs if k not in _LOGGING_KWARGS]
    if context_keys:
        context = copy(context)
        context.update((k, kwargs.pop(k)) for k in context_keys)
    extra = kwargs["extra"] = kwargs.get("extra", dict())
    extra[OVERLAY_REC_CTXT] = context
    return kwargs


class KwLogger(logging.LoggerAdapter):
    """Passes extra keyword arguments through without an `extra` dict."""

    def process(self, msg, kwargs):
        return msg, _embed_context_in_extra_kw(kwargs)


def getLogger(name: ty.Optional[str] = None) -> logging.LoggerAdapter:
    logger = logging.getLogger(name)
    if logger.level == logging.NOTSET:
        logger.setLevel(LOGLEVEL())
    return KwLogger(logger, dict())


def keyvals_from_record(record: logging.LogRecord) -> ty.Optional[ty.Dict[str, ty.Any]]:
    return getattr(record, OVERLAY_REC_CTXT, None)


class CompactFormatter(logging.Formatter):
    """One line per record: time, level, fixed-width logger name, context, message."""

    @staticmethod
    def format_module_name(name: str) -> str:
        max_len = MAX_MODULE_NAME_LEN()
        compressed = (
            name if len(name) <= max_len else name[: max_len // 2 - 2] + "..." + name[-max_len // 2 + 1 :]
        )
        return f"{compressed:{max_len}}"

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        levelname = f"{record.levelname:7}"
        if record.levelno < logging.WARNING:
            levelname = levelname.lower()
        context = keyvals_from_record(record) or _OverlayContext()
        formatted = (
            f"{self.formatTime(record)} {levelname}  {self.format_module_name(record.name)}"
            f" {context} {record.message}"
        )
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            formatted += "\n" + record.exc_text
        if record.stack_info:
            formatted += "\n" + self.formatStack(record.stack_info)
        return formatted


_BASE_LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"default": {"()": CompactFormatter}},
    "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "default"}},
    "root": {"handlers": ["console"], "level": LOGLEVEL()},
}


if not logging.getLogger().hasHandlers():
    logging.config.dictConfig(_BASE_LOG_CONFIG)
