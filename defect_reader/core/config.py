"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    DEFECT_INSTANCES_FILE : YAML file listing the remote defect service instances
    COVERITY_INSTANCE     : Default instance name when a target names none (default: default)
    COVERITY_HOST         : Host of the single env-configured instance
    COVERITY_PORT         : Port of the single env-configured instance (default: 8080)
    COVERITY_USER         : Service account user
    COVERITY_PASSWORD     : Service account password
    COVERITY_USE_SSL      : Use https for the env-configured instance (default: false)
    DEFECT_SERVICE_TIMEOUT: Seconds before a page request times out (default: 60)
    ROOT_URL              : Public root URL of this service, used for the details link
    RESULTS_DIR           : Directory for persisted result artifacts (empty = disabled)
    LOG_LEVEL             : Root log level (default: INFO)

Instance Resolution:
    If DEFECT_INSTANCES_FILE is set it wins. Otherwise a single instance named
    COVERITY_INSTANCE is built from the COVERITY_* variables, provided
    COVERITY_HOST is set.
"""
import os
from dotenv import load_dotenv

load_dotenv()

DEFECT_INSTANCES_FILE = os.getenv("DEFECT_INSTANCES_FILE", "")
COVERITY_INSTANCE = os.getenv("COVERITY_INSTANCE", "default")
COVERITY_HOST = os.getenv("COVERITY_HOST", "")
COVERITY_PORT = int(os.getenv("COVERITY_PORT", 8080))
COVERITY_USER = os.getenv("COVERITY_USER", "")
COVERITY_PASSWORD = os.getenv("COVERITY_PASSWORD", "")
COVERITY_USE_SSL = os.getenv("COVERITY_USE_SSL", "false").lower() == "true"

DEFECT_SERVICE_TIMEOUT = float(os.getenv("DEFECT_SERVICE_TIMEOUT", 60))

# Trailing slash expected, same as the build URL concatenation
ROOT_URL = os.getenv("ROOT_URL") or None

RESULTS_DIR = os.getenv("RESULTS_DIR", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
