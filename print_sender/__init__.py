"""Print Sender - line-numbered G-code streaming for 3D printers.

Streams G-code to printer firmware with ``ok <n>`` acknowledgments,
resend recovery, and pause/resume/stop control while a job runs.
"""

__version__ = "1.2"
__author__ = "Bob Kolbasowski"

from .device_session import DeviceSession
from .utils import SessionConfig, Settings

__all__ = [
    "DeviceSession",
    "SessionConfig",
    "Settings",
]
