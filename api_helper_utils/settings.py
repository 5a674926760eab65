# api_helper_utils/settings.py - environment-driven defaults for the client and test suite
import os

# Demo API exercised by the live test suite
BASE_URL = os.environ.get("BASE_URL", "https://fakestoreapi.com")

TIMEOUT = float(os.environ.get("TIMEOUT", "30"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
