"""On-call incident reporter package initialisation."""

from .config import AppSettings, load_settings  # noqa: F401
from .errors import AppError  # noqa: F401
from .handlers import IncidentHandler  # noqa: F401
from .lambda_adapter import LambdaAdapter  # noqa: F401
from .logging_config import configure_logging  # noqa: F401
from .modal import Modal, ModalSubmission, build_modal  # noqa: F401
from .monitoring import DatadogEventClient, MonitoringEvent  # noqa: F401
from .slack_client import SlackClient  # noqa: F401

__all__ = [
    "AppSettings",
    "load_settings",
    "AppError",
    "IncidentHandler",
    "LambdaAdapter",
    "configure_logging",
    "Modal",
    "ModalSubmission",
    "build_modal",
    "DatadogEventClient",
    "MonitoringEvent",
    "SlackClient",
]
