# Common utilities
from locshare.common.logging_utils import setup_logger as setup_logger
from locshare.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "setup_logger"]
