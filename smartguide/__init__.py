"""SmartGuide live location and SOS synchronization core."""

__version__ = "0.1.0"
