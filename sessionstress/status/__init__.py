from .channel import StatusChannel
from .view import LiveView, format_duration

__all__ = ["StatusChannel", "LiveView", "format_duration"]
