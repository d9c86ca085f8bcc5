from .log_context import configure_logging, ensure_correlation_id, get_correlation_id

__all__ = [
    "configure_logging",
    "ensure_correlation_id",
    "get_correlation_id",
]
