from .history import HistoryResolver, format_timestamp, now_timestamp

__all__ = ["HistoryResolver", "format_timestamp", "now_timestamp"]
