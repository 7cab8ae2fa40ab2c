from mediadash.models.log_entry import LogEntry

__all__ = ["LogEntry"]
