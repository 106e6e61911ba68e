"""Garmin Connect activity exporter package."""

__version__ = "0.3.0"

from .errors import GarminExportError  # noqa: E402
from .garmin_client import ActivityClient  # noqa: E402
from .models import Activity, Credentials  # noqa: E402

__all__ = [
    "__version__",
    "Activity",
    "ActivityClient",
    "Credentials",
    "GarminExportError",
]
