from .logger import setup_logging
from .numbers import parse_locale_number

__all__ = ["setup_logging", "parse_locale_number"]
