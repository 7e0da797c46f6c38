"""API route handlers."""
from . import daily_update, finances, wealth_summary

__all__ = ["daily_update", "finances", "wealth_summary"]
