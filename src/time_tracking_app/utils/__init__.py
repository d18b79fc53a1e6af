from .time import InvalidDateInput, format_clock, format_relative_time, parse_day, parse_timestamp

__all__ = ["InvalidDateInput", "format_clock", "format_relative_time", "parse_day", "parse_timestamp"]
