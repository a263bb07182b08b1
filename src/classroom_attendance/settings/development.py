from .common import *  # noqa: F401,F403
from .common import _env_bool

DEBUG = _env_bool("DEBUG", True)
LOG_LEVEL = "DEBUG"

# If enabled, the app applies schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = _env_bool("AUTO_INIT_DB", True)
