"""Utility functions and helpers."""

from .file_utils import (
    build_episode_file_name,
    detect_file_encoding,
    sanitize_filename,
    season_display_name,
)
from .time_utils import format_ass_time, parse_ass_time, shift_ass_time

__all__ = [
    'build_episode_file_name',
    'detect_file_encoding',
    'sanitize_filename',
    'season_display_name',
    'format_ass_time',
    'parse_ass_time',
    'shift_ass_time',
]
