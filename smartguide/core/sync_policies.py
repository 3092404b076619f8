"""Location / SOS sync policy constants."""

from __future__ import annotations

# Fixed delay before a dropped session reconnects
RECONNECT_BACKOFF_SECONDS = 3.0

# Bounded retry for send() while the link is down
SEND_RETRY_ATTEMPTS = 2
SEND_RETRY_DELAY_SECONDS = 0.5

# Tracker location upload cadence
SAMPLE_INTERVAL_SECONDS = 5.0

# Reverse geocoding throttle: 10 seconds or 50 meters
GEOCODE_MIN_INTERVAL_SECONDS = 10.0
GEOCODE_MIN_DISTANCE_METERS = 50.0

# Cached when a lookup was attempted and failed (None means never queried)
ADDRESS_UNAVAILABLE = "Address unavailable"

# Used in notification text when neither relay nor geocoder had an address
UNKNOWN_PLACE = "an unknown location"

# Local notification content
SOS_ALERT_TITLE = "SOS alert"
SOS_ALERT_BODY = "Someone sent an SOS at {address}!"
SOS_SENT_TITLE = "SOS sent"
SOS_SENT_BODY = "Emergency request delivered"
