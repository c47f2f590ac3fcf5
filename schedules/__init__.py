from .calculator import Schedule, next_run, parse_schedule

__all__ = ['Schedule', 'next_run', 'parse_schedule']
