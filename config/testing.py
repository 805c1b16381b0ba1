SECRET_KEY = "test-secret"

# Tests wire stores explicitly; nothing is reached over the network.
DB_CONFIG = None
SUPABASE_URL = None
SUPABASE_SERVICE_ROLE_KEY = None
SUPABASE_ANON_KEY = None

HTTP_TIMEOUT_SECONDS = 1.0
AUTOSAVE_DELAY_SECONDS = 0.05

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
