"""External media tool adapters (ffmpeg) for trimming, muxing and cleaning MKVs."""

import logging
import os
import shutil
import subprocess

from ..config.config_manager import get_config_value
from ..exceptions import CleanError, MergeError, TrimError

logger = logging.getLogger(__name__)

VIDEO_FILE = 'episode.mkv'
SUBTITLE_FILE = 'subtitles.ass'
SCRATCH_FILE = 'episode.work.mkv'

# ISO 639-2/B codes keyed by the language names providers put in track titles
LANGUAGE_TAGS = {
    'English': 'eng',
    'Spanish': 'spa',
    'Español': 'spa',
    'French': 'fre',
    'Français': 'fre',
    'German': 'ger',
    'Deutsch': 'ger',
    'Italian': 'ita',
    'Italiano': 'ita',
    'Portuguese': 'por',
    'Português': 'por',
    'Arabic': 'ara',
    'Russian': 'rus',
    'Japanese': 'jpn',
}


def language_tag(language):
    """'English (US)' -> 'eng'; unknown names map to 'und'."""
    if not language:
        return 'und'
    if len(language) == 3 and language.islower():
        return language
    for name, tag in LANGUAGE_TAGS.items():
        if name.lower() in language.lower():
            return tag
    return 'und'


class MediaService:
    """Runs ffmpeg against the well-known files inside a working directory"""

    def __init__(self, ffmpeg_path=None):
        self.ffmpeg_path = ffmpeg_path or get_config_value('tools.ffmpeg', 'ffmpeg')

    def _run(self, args, error_cls, action):
        executable = shutil.which(self.ffmpeg_path) or self.ffmpeg_path
        cmd = [executable, '-hide_banner', '-loglevel', 'error', '-y'] + args
        logger.debug("EXEC: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise error_cls(f"Unable to run ffmpeg for {action}", e) from e
        if result.returncode != 0:
            raise error_cls(f"ffmpeg failed while {action} (exit {result.returncode}): {result.stderr.strip()}")

    @staticmethod
    def _stage(working_dir):
        """Move the current episode aside so ffmpeg can write a fresh one in its place."""
        video = os.path.join(working_dir, VIDEO_FILE)
        scratch = os.path.join(working_dir, SCRATCH_FILE)
        os.replace(video, scratch)
        return video, scratch

    @staticmethod
    def _finish(video, scratch, ok):
        if ok:
            os.remove(scratch)
        else:
            os.replace(scratch, video)

    def _rewrite(self, working_dir, build_args, error_cls, action):
        if not os.path.exists(os.path.join(working_dir, VIDEO_FILE)):
            raise error_cls(f"No {VIDEO_FILE} in {working_dir} to process")
        try:
            video, scratch = self._stage(working_dir)
        except OSError as e:
            raise error_cls(f"Unable to stage {VIDEO_FILE} for {action}", e) from e
        ok = False
        try:
            self._run(build_args(scratch, video), error_cls, action)
            ok = True
        finally:
            self._finish(video, scratch, ok)

    def trim_video(self, duration_ms, working_dir):
        """Drop the first ``duration_ms`` milliseconds of the episode"""
        seconds = f"{duration_ms / 1000:.3f}"
        self._rewrite(
            working_dir,
            lambda src, dst: ['-ss', seconds, '-i', src, '-map', '0', '-c', 'copy',
                              '-avoid_negative_ts', 'make_zero', dst],
            TrimError,
            f"trimming {duration_ms}ms",
        )

    def merge_subtitle_track(self, video_language, subtitle_language, working_dir):
        """Mux subtitles.ass into episode.mkv as the default subtitle track"""
        subtitles = os.path.join(working_dir, SUBTITLE_FILE)
        if not os.path.exists(subtitles):
            raise MergeError(f"No {SUBTITLE_FILE} in {working_dir} to merge")
        video_tag = language_tag(video_language)
        subtitle_tag = language_tag(subtitle_language)
        self._rewrite(
            working_dir,
            lambda src, dst: ['-i', src, '-i', subtitles, '-map', '0:v', '-map', '0:a?', '-map', '1', '-c', 'copy',
                              '-metadata:s:v', f'language={video_tag}',
                              '-metadata:s:a', f'language={video_tag}',
                              '-metadata:s:s:0', f'language={subtitle_tag}',
                              '-disposition:s:0', 'default', dst],
            MergeError,
            "merging subtitles",
        )

    def clean_metadata(self, working_dir):
        """Strip container-level tags and chapters, keeping per-track language tags"""
        self._rewrite(
            working_dir,
            lambda src, dst: ['-i', src, '-map', '0', '-c', 'copy',
                              '-map_metadata:g', '-1', '-map_chapters', '-1', dst],
            CleanError,
            "cleaning metadata",
        )
