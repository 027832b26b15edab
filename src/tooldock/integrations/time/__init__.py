from tooldock.integrations.time.abc import Time
from tooldock.integrations.time.real import RealTime

__all__ = [
    "RealTime",
    "Time",
]
