import structlog

LOG_LEVELS = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "error": 40,
    "critical": 50,
}


def level_number(level: str) -> int:
    try:
        return LOG_LEVELS[level.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown log level {level!r}, expected one of {', '.join(LOG_LEVELS)}"
        ) from None


def setup_logging(*, json_output: bool = True, level: str = "info") -> None:
    """Configure structlog for the relay.

    JSON lines keep non-ASCII text as-is so translated Persian output stays
    readable in logs. Events below ``level`` are dropped before rendering.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(pad_event=30, colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_number(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
