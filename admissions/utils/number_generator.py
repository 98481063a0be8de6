"""
Generator for human-readable application numbers
"""

import random
import time

from admissions.config import settings


def generate_application_number(prefix: str = None) -> str:
    """
    Builds an application number from the clock and a random suffix.

    Format: PREFIX-<last 6 digits of epoch millis><4 random digits>

    Example: BSU-4821739052
    """
    prefix = prefix or settings.application_number_prefix
    timestamp = str(int(time.time() * 1000))[-6:]
    suffix = random.randint(1000, 9999)
    return f"{prefix}-{timestamp}{suffix}"
