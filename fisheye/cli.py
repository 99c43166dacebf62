import os
import sys

from django.core.management import execute_from_command_line


def main(argv=None):
    """Runs the ``undistort`` command as a standalone ``fisheye`` program."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'fisheye_calibrator.settings')
    argv = sys.argv[1:] if argv is None else list(argv)
    execute_from_command_line(['fisheye', 'undistort', *argv])


if __name__ == '__main__':
    main()
