import os
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(override=True)

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = bool(int(os.getenv('DEBUG', 0)))
ALLOWED_HOSTS = [host for host in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if host]
CORS_ALLOWED_ORIGINS = [origin for origin in os.getenv("DJANGO_CORS_ORIGINS", "").split(",") if origin]


# Application definition

INSTALLED_APPS = [
    'jazzmin',  # admin theme
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'accounts',
    'scheduled_messages',
    'executions',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'core.wsgi.application'


# Database
# Without DB_DEFAULT_ENGINE a local SQLite file is used.

if os.getenv('DB_DEFAULT_ENGINE'):
    DATABASES = {
        'default': {
            'ENGINE': os.getenv('DB_DEFAULT_ENGINE'),
            'NAME': os.getenv('DB_DEFAULT_NAME'),
            'USER': os.getenv('DB_DEFAULT_USER'),
            'PASSWORD': os.getenv('DB_DEFAULT_PASSWORD'),
            'HOST': os.getenv('DB_DEFAULT_HOST'),
            'PORT': os.getenv('DB_DEFAULT_PORT'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

AUTH_USER_MODEL = 'accounts.User'

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Internationalization

LANGUAGE_CODE = 'en-us'
USE_I18N = True

TIME_ZONE = 'UTC'
USE_TZ = True


# Static files (CSS, JavaScript, Images)

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGIN_URL = '/admin/login/'


# Discord

DISCORD_BOT_TOKEN = os.getenv('DISCORD_BOT_TOKEN', '')
DISCORD_API_BASE_URL = os.getenv('DISCORD_API_BASE_URL', 'https://discord.com/api/v10')


# Scheduled messages

SCHEDULED_MESSAGES = {
    # seconds one message may spend querying, rendering and delivering
    'EXECUTION_TIMEOUT': int(os.getenv('SCHEDULED_MESSAGES_TIMEOUT', 10)),
    'DEFAULT_TIMEZONE': os.getenv('SCHEDULED_MESSAGES_TIMEZONE', 'America/Mexico_City'),
    'CONSUMERS': {
        'discord': 'consumers.discord.DiscordConsumer',
    },
    # (connect, read) seconds for the Discord HTTP call
    'DISCORD_TIMEOUT': (5, 8),
}


# Logging

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s %(levelname)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
        'file': {
            'class': 'logging.FileHandler',
            'filename': os.getenv('SCHEDULED_MESSAGES_LOG_FILE', str(BASE_DIR / 'scheduled_messages.log')),
            'encoding': 'utf-8',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'scheduled_messages': {'handlers': ['console', 'file'], 'level': 'INFO'},
        'executions': {'handlers': ['console', 'file'], 'level': 'INFO'},
        'consumers': {'handlers': ['console', 'file'], 'level': 'INFO'},
        'schedules': {'handlers': ['console', 'file'], 'level': 'INFO'},
    },
}

# SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
# CSRF_COOKIE_SECURE = True
# SESSION_COOKIE_SECURE = True
