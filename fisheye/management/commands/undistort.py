import dataclasses
import logging

from django.core.management.base import BaseCommand
from django.core.management.base import CommandError

from fisheye.calibration_pipeline import CalibrationComputationError
from fisheye.calibration_service import run_undistortion
from fisheye.input_collection import (
    USAGE,
    InputError,
    prompt_for_request,
    request_from_arguments,
    run_form,
    show_outcome_dialog,
)


class Command(BaseCommand):
    help = 'Calibrates a fisheye camera from checkerboard samples and undistorts one image'

    def create_parser(self, prog_name, subcommand, **kwargs):
        parser = super().create_parser(prog_name, subcommand, **kwargs)
        default_error = parser.error

        def error(message):
            if parser.called_from_command_line:
                parser.exit(1, f"Error: {message}\n{USAGE}\n")
            default_error(message)

        parser.error = error
        return parser

    def add_arguments(self, parser):
        parser.add_argument(
            'inputs',
            nargs='*',
            metavar='value',
            help='<src_image> <dest_image> <samples_dir> <checkerboard_width> <checkerboard_height>',
        )
        parser.add_argument('-i', '--interactive', action='store_true', help='Prompt for each value on the console')
        parser.add_argument('-gui', dest='gui', action='store_true', help='Collect the values in a form window (must be used alone)')
        parser.add_argument('--square-size', type=float, help='Checkerboard square size (defaults to FISHEYE_SQUARE_SIZE)')
        parser.add_argument('--scale', type=float, help='Focal length scale of the undistorted output (default 1.0)')

    def handle(self, *args, **options):
        if options['verbosity'] >= 2:
            logging.getLogger('fisheye').setLevel(logging.DEBUG)

        square_size = options['square_size']
        if square_size is not None and square_size <= 0:
            raise CommandError(f"--square-size must be positive, got {square_size}")
        scale = options['scale']
        if scale is not None and scale <= 0:
            raise CommandError(f"--scale must be positive, got {scale}")

        use_gui = options['gui']
        request = self._collect_request(options)
        if request is None:
            self.stdout.write("GUI cancelled or exited.")
            return
        request = dataclasses.replace(
            request,
            square_size=square_size,
            scale=1.0 if scale is None else scale,
        )

        try:
            result = run_undistortion(request, report=self.stdout.write)
        except CalibrationComputationError as exc:
            if use_gui:
                show_outcome_dialog(str(exc), success=False)
            raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(
            f"Used {result.accepted_count} of {result.loaded_count} samples; "
            f"reprojection error {result.model.rms_error:.4f} px"
        ))
        if use_gui:
            show_outcome_dialog(f"Image saved to: {result.destination_path}", success=True)

    def _collect_request(self, options):
        inputs = options['inputs']
        try:
            if options['gui']:
                extras = inputs or options['interactive'] or options['square_size'] is not None or options['scale'] is not None
                if extras:
                    raise CommandError("-gui option should be used alone.")
                self.stdout.write("Launching GUI...")
                return run_form()

            if options['interactive']:
                if inputs:
                    raise CommandError(USAGE)
                self.stdout.write("Entering interactive mode. Please provide the following inputs:")
                try:
                    return prompt_for_request()
                except EOFError as exc:
                    raise CommandError("Interactive input ended before all values were provided.") from exc

            return request_from_arguments(inputs)
        except InputError as exc:
            raise CommandError(str(exc)) from exc
