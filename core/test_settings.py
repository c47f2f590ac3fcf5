from .settings import *  # noqa: F401,F403

SECRET_KEY = 'test-secret-key'
DEBUG = False
ALLOWED_HOSTS = ['testserver']

# worker threads open their own connections, so the test database must be a file
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test_db.sqlite3',  # noqa: F405
        'TEST': {'NAME': BASE_DIR / 'test_db.sqlite3'},  # noqa: F405
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

DISCORD_BOT_TOKEN = 'test-token'
DISCORD_API_BASE_URL = 'https://discord.test/api'

SCHEDULED_MESSAGES = {
    **SCHEDULED_MESSAGES,  # noqa: F405
    'EXECUTION_TIMEOUT': 5,
    'DEFAULT_TIMEZONE': 'America/Mexico_City',
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {'console': {'class': 'logging.StreamHandler'}},
    'root': {'handlers': ['console'], 'level': 'WARNING'},
}
