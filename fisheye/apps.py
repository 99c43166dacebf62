from django.apps import AppConfig


class FisheyeConfig(AppConfig):
    name = 'fisheye'
    verbose_name = 'Fisheye calibrator'
