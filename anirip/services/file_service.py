"""File management: scratch directory, output tree and final placement."""

import logging
import os
import shutil
import tempfile
import time

from ..config.config_manager import get_config_value
from ..exceptions import PlacementError
from ..utils.file_utils import sanitize_filename, season_display_name

logger = logging.getLogger(__name__)

DEFAULT_PLACE_RETRIES = 10


def default_temp_dir():
    return os.path.join(tempfile.gettempdir(), 'anirip')


class FileService:
    """Owns the scratch directory and the ``<Show>/<Season>/`` output tree"""

    def __init__(self, temp_dir=None, output_dir=None, retry_delay=0.5):
        """
        Args:
            temp_dir: scratch directory shared by every episode of the run
            output_dir: root of the show directories
            retry_delay: base sleep between placement attempts, in seconds
        """
        self.temp_dir = temp_dir or get_config_value('download.temp_dir') or default_temp_dir()
        self.output_dir = output_dir or get_config_value('download.output_dir', '.')
        self.retry_delay = retry_delay
        os.makedirs(self.temp_dir, exist_ok=True)

    def clear_temp_dir(self):
        """Remove the scratch directory (cookies included) and recreate it empty"""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)
            logger.info(f"Erased temporary directory {self.temp_dir}")
        os.makedirs(self.temp_dir, exist_ok=True)

    def temp_path(self, file_name):
        return os.path.join(self.temp_dir, file_name)

    def season_dir(self, show_title, season_number):
        return os.path.join(self.output_dir, sanitize_filename(show_title), season_display_name(season_number))

    def ensure_season_dir(self, show_title, season_number):
        path = self.season_dir(show_title, season_number)
        os.makedirs(path, exist_ok=True)
        return path

    def final_path(self, show_title, season_number, file_name, extension='mkv'):
        return os.path.join(self.season_dir(show_title, season_number), f"{file_name}.{extension}")

    def exists(self, path):
        return os.path.isfile(path)

    def place(self, source, destination, attempts=None):
        """Move ``source`` to ``destination``, retrying while the file is locked.

        Raises:
            PlacementError: every attempt failed
        """
        attempts = attempts or int(get_config_value('download.place_retries', DEFAULT_PLACE_RETRIES))
        os.makedirs(os.path.dirname(destination) or '.', exist_ok=True)

        last_error = None
        for attempt in range(attempts):
            try:
                shutil.move(source, destination)
                logger.debug(f"Moved {source} -> {destination}")
                return destination
            except OSError as e:
                last_error = e
                if attempt < attempts - 1:
                    logger.warning(f"Moving {os.path.basename(source)} failed, retrying ({attempt + 1}/{attempts}): {e}")
                    time.sleep(self.retry_delay * (attempt + 1))
        raise PlacementError(f"Unable to move {source} to {destination} after {attempts} attempts", last_error)
