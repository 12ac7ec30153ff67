"""Handlers package."""

from webp_converter.handlers.conversion import is_image_file, process_object, run_conversion

__all__ = ["is_image_file", "process_object", "run_conversion"]
