from .logging import observer_severity, setup_logging

__all__ = ["observer_severity", "setup_logging"]
