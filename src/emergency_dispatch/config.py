import os

SURGE_RADIUS_KM = float(os.getenv("SURGE_RADIUS_KM", "2"))
SURGE_TIME_WINDOW_MINUTES = float(os.getenv("SURGE_TIME_WINDOW_MINUTES", "30"))
SURGE_THRESHOLD = int(os.getenv("SURGE_THRESHOLD", "3"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
