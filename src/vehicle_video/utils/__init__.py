from .env import load_local_env
from .config import Settings, get_settings
from .clock import Clock, SystemClock, FakeClock

__all__ = ["load_local_env", "Settings", "get_settings", "Clock", "SystemClock", "FakeClock"]
