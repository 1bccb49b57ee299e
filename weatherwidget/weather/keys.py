import hashlib

# Namespace shared by every cached weather snapshot; purged as a whole on key rotation
WEATHER_CACHE_PREFIX = "weather_data_"


def cache_key(city: str, unit: str) -> str:
    """Fingerprint for (city, unit). City matching is case-insensitive."""
    digest = hashlib.md5(f"{city.lower()}_{unit}".encode("utf-8")).hexdigest()
    return f"{WEATHER_CACHE_PREFIX}{digest}"
