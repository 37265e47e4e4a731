"""Shared constants for the configuration module.

These constants are separated to avoid circular imports between settings.py
and the modules that consume them.
"""

from grainwatch.lib.config.enums import Unit

# Readings kept per device for charts and trend analysis
HISTORY_CAPACITY = 50

# Devices tracked at once; the least recently reporting one is evicted
HISTORY_MAX_DEVICES = 100

# Minimum time between two admitted alerts of the same device and type
ALERT_COOLDOWN_SEC = 5 * 60

# Cooldown map size above which stale entries are purged
COOLDOWN_COMPACTION_THRESHOLD = 100

# Quality trend: readings averaged and the delta that counts as a trend
QUALITY_TREND_WINDOW = 12
QUALITY_TREND_DELTA = 2.0

# DHT22 sensor physical bounds
DHT22_BOUNDS = {
    Unit.CELSIUS: (-40, 80),
    Unit.PERCENT: (0, 100),
}
