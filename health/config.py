"""
Health Monitor Configuration

Module-specific settings for dependency liveness probing.
"""
import os

# =========================
# Probe Schedule
# =========================

# Poll interval in seconds while a dependency is healthy
HEALTH_CHECK_INTERVAL = float(os.getenv("HEALTH_CHECK_INTERVAL", "30"))

# Poll interval in seconds while a dependency is down (fast recovery detection)
HEALTH_CHECK_INTERVAL_DOWN = float(os.getenv("HEALTH_CHECK_INTERVAL_DOWN", "10"))

# Upper bound for a single probe request in seconds
HEALTH_CHECK_TIMEOUT = float(os.getenv("HEALTH_CHECK_TIMEOUT", "15"))

# Consecutive failures required before a dependency is marked down
HEALTH_FAILURE_THRESHOLD = int(os.getenv("HEALTH_FAILURE_THRESHOLD", "2"))

# Liveness path appended to each dependency's base URL
HEALTH_CHECK_PATH = os.getenv("HEALTH_CHECK_PATH", "/health")

# =========================
# Durable Cache
# =========================

# Persist health state to Redis so it survives restarts
HEALTH_CACHE_ENABLED = os.getenv("HEALTH_CACHE_ENABLED", "true").lower() == "true"

# Prefix for health keys in Redis (serverHealth:<dependency>)
HEALTH_CACHE_KEY_PREFIX = os.getenv("HEALTH_CACHE_KEY_PREFIX", "serverHealth")
