import os

import django

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'fisheye_calibrator.settings')
django.setup()
