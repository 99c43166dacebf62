"""Front-ends that gather the five values a run needs.

None of these touch the pipeline; each returns an ``UndistortRequest`` (or
``None`` when the operator closes the form window).
"""
from __future__ import annotations

from typing import Callable, Optional, Sequence

from .calibration_pipeline import GridSpec
from .calibration_service import UndistortRequest

USAGE = (
    "Usage: fisheye <src_image> <dest_image> <samples_dir> <checkerboard_width> <checkerboard_height>\n"
    "Or: fisheye -i (Interactive Mode)\n"
    "Or: fisheye -gui (Window Mode)"
)

FORM_DEFAULTS = {
    'source': 'example/samples/IMG-0.jpg',
    'destination': 'undistorted.jpg',
    'samples': 'example/samples',
    'columns': '9',
    'rows': '6',
}


class InputError(ValueError):
    """Raised when collected values cannot form a run request."""


def parse_grid_dimension(value: str, label: str) -> int:
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise InputError(f"Invalid {label} input: {value!r} is not an integer") from exc
    if number < 2:
        raise InputError(f"Invalid {label} input: {number} (must be at least 2)")
    return number


def build_request(source: str, destination: str, samples: str, width: str, height: str) -> UndistortRequest:
    grid = GridSpec(
        columns=parse_grid_dimension(width, 'width'),
        rows=parse_grid_dimension(height, 'height'),
    )
    return UndistortRequest(
        source_path=source,
        destination_path=destination,
        samples_dir=samples,
        grid=grid,
    )


def request_from_arguments(values: Sequence[str]) -> UndistortRequest:
    if len(values) != 5:
        raise InputError(USAGE)
    return build_request(*values)


def prompt_for_request(prompt: Optional[Callable[[str], str]] = None) -> UndistortRequest:
    prompt = prompt or input
    source = prompt("Enter source image path: ")
    destination = prompt("Enter destination image path: ")
    samples = prompt("Enter samples directory path: ")
    width = prompt("Enter checkerboard width: ")
    height = prompt("Enter checkerboard height: ")
    return build_request(source, destination, samples, width, height)


def run_form() -> Optional[UndistortRequest]:
    """Shows the input form and blocks until it is submitted or closed."""
    import tkinter as tk
    from tkinter import messagebox

    try:
        root = tk.Tk()
    except tk.TclError as exc:
        raise InputError(f"Could not open the form window: {exc}") from exc
    root.title("Fisheye Calibrator Input")
    submitted = {}

    fields = [
        ('source', "Source Image Path:"),
        ('destination', "Destination Image Path:"),
        ('samples', "Samples Directory:"),
        ('columns', "Checkerboard Width (cols):"),
        ('rows', "Checkerboard Height (rows):"),
    ]
    entries = {}
    for row, (key, label) in enumerate(fields):
        tk.Label(root, text=label, anchor='w').grid(row=row, column=0, sticky='w', padx=10, pady=8)
        entry = tk.Entry(root, width=60 if key not in ('columns', 'rows') else 10)
        entry.insert(0, FORM_DEFAULTS[key])
        entry.grid(row=row, column=1, sticky='w', padx=10, pady=8)
        entries[key] = entry

    def on_start():
        values = {key: entry.get() for key, entry in entries.items()}
        try:
            submitted['request'] = build_request(
                values['source'],
                values['destination'],
                values['samples'],
                values['columns'],
                values['rows'],
            )
        except InputError as exc:
            messagebox.showerror("Error", str(exc), parent=root)
            return
        root.destroy()

    tk.Button(root, text="Start Calibration", command=on_start).grid(
        row=len(fields), column=0, columnspan=2, sticky='ew', padx=10, pady=16
    )
    root.protocol("WM_DELETE_WINDOW", root.destroy)
    root.mainloop()

    return submitted.get('request')


def show_outcome_dialog(message: str, success: bool) -> None:
    import tkinter as tk
    from tkinter import messagebox

    root = tk.Tk()
    root.withdraw()
    if success:
        messagebox.showinfo("Success", message, parent=root)
    else:
        messagebox.showerror("Error", message, parent=root)
    root.destroy()
