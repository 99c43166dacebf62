SECRET_KEY = 'fisheye-calibrator-local-only'

DEBUG = False

INSTALLED_APPS = [
    'fisheye',
]

# The calibrator keeps no state between runs.
DATABASES = {}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '[{levelname}] {name}: {message}', 'style': '{'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'loggers': {
        'fisheye': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
    },
}

FISHEYE_SAMPLE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.bmp')
FISHEYE_SQUARE_SIZE = 1.0
