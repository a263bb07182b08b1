from .common import *  # noqa: F401,F403

SECRET_KEY = "test-secret"
JWT_SECRET = "test-jwt-secret"

DEBUG = False
TESTING = True

STORAGE_BACKEND = "memory"
AUTO_INIT_DB = False
START_SWEEPER = False
PUBLIC_BASE_URL = "http://testserver"
