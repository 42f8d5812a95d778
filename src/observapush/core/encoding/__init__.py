"""Wire encoders for the log and metrics backends."""

from observapush.core.encoding.loki import encode_log_event
from observapush.core.encoding.otlp import encode_metric

__all__ = ["encode_log_event", "encode_metric"]
