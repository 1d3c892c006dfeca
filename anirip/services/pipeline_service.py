"""Episode pipeline and show orchestration.

Each episode walks the same sequence of steps regardless of provider::

    Pending -> InfoFetched -> (SkippedExisting | VideoDownloaded) -> Trimmed
            -> SubtitlesFetched -> Merged -> Cleaned -> Placed -> Done

A failing step ends that episode only; the orchestrator moves on to the
next one. Failing to pick a provider, log in or list the episodes ends the
current show URL only.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .. import providers
from ..config.config_manager import get_config_value
from ..exceptions import (
    AniripError,
    AuthenticationError,
    CleanError,
    MergeError,
    MetadataFetchError,
    PlacementError,
    SubtitleFetchError,
    TrimError,
    UnsupportedProviderError,
    VideoFetchError,
)
from .file_service import DEFAULT_PLACE_RETRIES, FileService, default_temp_dir
from .logging_service import log_success
from .media_service import VIDEO_FILE, MediaService

logger = logging.getLogger(__name__)

# Studio tag -> length of its intro card in milliseconds
INTRO_TRIMS = {
    'daisuki': 5040,
    'aniplex': 6747,
    'sunrise': 8227,
}


class EpisodeState(Enum):
    PENDING = 'pending'
    INFO_FETCHED = 'info fetched'
    SKIPPED_EXISTING = 'skipped existing'
    VIDEO_DOWNLOADED = 'video downloaded'
    TRIMMED = 'trimmed'
    SUBTITLES_FETCHED = 'subtitles fetched'
    MERGED = 'merged'
    CLEANED = 'cleaned'
    PLACED = 'placed'
    DONE = 'done'
    FAILED = 'failed'


# Error raised when the transition into a state fails unexpectedly
STEP_ERRORS = {
    EpisodeState.INFO_FETCHED: MetadataFetchError,
    EpisodeState.VIDEO_DOWNLOADED: VideoFetchError,
    EpisodeState.TRIMMED: TrimError,
    EpisodeState.SUBTITLES_FETCHED: SubtitleFetchError,
    EpisodeState.MERGED: MergeError,
    EpisodeState.CLEANED: CleanError,
    EpisodeState.PLACED: PlacementError,
}


def parse_trim_selector(selector):
    """'daisuki,sunrise' -> frozenset({'daisuki', 'sunrise'}); unknown tokens are ignored"""
    selector = (selector or '').lower()
    return frozenset(studio for studio in INTRO_TRIMS if studio in selector)


@dataclass(frozen=True)
class DownloadSettings:
    """Run-wide options, fixed before the first episode is processed"""
    language: str = 'English'
    quality: str = '1080p'
    trim_studios: frozenset = frozenset()
    temp_dir: str = field(default_factory=default_temp_dir)
    output_dir: str = '.'
    video_language: str = 'jpn'
    extension: str = 'mkv'
    place_retries: int = DEFAULT_PLACE_RETRIES

    @classmethod
    def from_config(cls, language=None, quality=None, trim=None, temp_dir=None, output_dir=None):
        """Build settings from the config file, letting explicit arguments win"""
        return cls(
            language=language or get_config_value('download.language', 'English'),
            quality=quality or get_config_value('download.quality', '1080p'),
            trim_studios=parse_trim_selector(trim if trim is not None else get_config_value('download.trim', '')),
            temp_dir=temp_dir or get_config_value('download.temp_dir') or default_temp_dir(),
            output_dir=output_dir or get_config_value('download.output_dir', '.'),
            video_language=get_config_value('download.video_language', 'jpn'),
            place_retries=int(get_config_value('download.place_retries', DEFAULT_PLACE_RETRIES)),
        )

    def intro_trims(self):
        """(studio, milliseconds) for every selected studio, in a fixed order"""
        return [(studio, length) for studio, length in INTRO_TRIMS.items() if studio in self.trim_studios]


@dataclass
class EpisodeResult:
    name: str
    state: EpisodeState = EpisodeState.PENDING
    failed_step: Optional[EpisodeState] = None
    error: Optional[AniripError] = None
    offset_ms: int = 0
    subtitle_language: Optional[str] = None
    path: Optional[str] = None
    skipped: bool = False

    @property
    def succeeded(self):
        return self.state == EpisodeState.DONE


@dataclass
class ShowReport:
    url: str
    title: str = ''
    provider: Optional[str] = None
    results: List[EpisodeResult] = field(default_factory=list)
    error: Optional[AniripError] = None

    @property
    def completed(self):
        return [r for r in self.results if r.succeeded and not r.skipped]

    @property
    def skipped(self):
        return [r for r in self.results if r.skipped]

    @property
    def failed(self):
        return [r for r in self.results if r.state == EpisodeState.FAILED]


class EpisodePipeline:
    """Runs the per-episode steps against one provider episode"""

    def __init__(self, settings: DownloadSettings, file_service: FileService, media_service: MediaService):
        self.settings = settings
        self.file_service = file_service
        self.media_service = media_service

    def run(self, show_title, season_number, episode, cookies) -> EpisodeResult:
        result = EpisodeResult(name=episode.get_file_name() or f"episode {episode.id}")
        try:
            self._run_steps(result, show_title, season_number, episode, cookies)
        except AniripError as e:
            logger.error(f"{result.name}: {e}")
            result.state = EpisodeState.FAILED
            result.error = e
        return result

    @staticmethod
    def _advance(result, state):
        logger.debug(f"{result.name}: {result.state.value} -> {state.value}")
        result.state = state

    def _step(self, result, target, action, *args):
        """Run one transition; anything unexpected becomes the step's error kind."""
        try:
            value = action(*args)
        except AniripError:
            result.failed_step = target
            raise
        except Exception as e:
            result.failed_step = target
            raise STEP_ERRORS[target](f"Unexpected failure before state '{target.value}'", e) from e
        self._advance(result, target)
        return value

    def _skip_existing(self, result, show_title, season_number, file_name):
        final_path = self.file_service.final_path(show_title, season_number, file_name, self.settings.extension)
        if not self.file_service.exists(final_path):
            return final_path
        log_success(logger, f"{file_name}.{self.settings.extension} has already been downloaded successfully...")
        self._advance(result, EpisodeState.SKIPPED_EXISTING)
        self._advance(result, EpisodeState.DONE)
        result.skipped = True
        result.path = final_path
        return None

    def _run_steps(self, result, show_title, season_number, episode, cookies):
        settings = self.settings
        temp_dir = settings.temp_dir

        # Episodes named at discovery time are checked before any request
        if episode.get_file_name() and not self._skip_existing(result, show_title, season_number,
                                                               episode.get_file_name()):
            return

        logger.info("Getting Episode Info...")
        self._step(result, EpisodeState.INFO_FETCHED, episode.get_episode_info, settings.quality, cookies)
        result.name = episode.get_file_name()

        final_path = self._skip_existing(result, show_title, season_number, result.name)
        if final_path is None:
            return

        logger.info(f"Downloading {result.name}")
        logger.info("Downloading video...")
        self._step(result, EpisodeState.VIDEO_DOWNLOADED, episode.download_episode, settings.quality, temp_dir, cookies)

        def trim():
            for studio, length in settings.intro_trims():
                logger.info(f"Trimming off {studio.capitalize()} Intro - {length}ms")
                self.media_service.trim_video(length, temp_dir)
                result.offset_ms += length

        self._step(result, EpisodeState.TRIMMED, trim)

        logger.info(f"Downloading subtitles with a total offset of {result.offset_ms}ms...")
        result.subtitle_language = self._step(
            result, EpisodeState.SUBTITLES_FETCHED,
            episode.download_subtitles, settings.language, result.offset_ms, temp_dir, cookies)

        if result.subtitle_language:
            logger.info("Merging subtitles into mkv container...")
            self._step(result, EpisodeState.MERGED, self.media_service.merge_subtitle_track,
                       settings.video_language, result.subtitle_language, temp_dir)
        else:
            logger.info("No subtitles to merge, keeping the video as downloaded")
            self._advance(result, EpisodeState.MERGED)

        logger.info("Cleaning MKV...")
        self._step(result, EpisodeState.CLEANED, self.media_service.clean_metadata, temp_dir)

        result.path = self._step(result, EpisodeState.PLACED, self.file_service.place,
                                 self.file_service.temp_path(VIDEO_FILE), final_path, settings.place_retries)
        self._advance(result, EpisodeState.DONE)
        log_success(logger, "Downloading and merging completed successfully.")


class Orchestrator:
    """Walks show URLs -> seasons -> episodes and feeds each episode to the pipeline"""

    def __init__(self, settings: DownloadSettings, file_service=None, media_service=None):
        self.settings = settings
        self.file_service = file_service or FileService(settings.temp_dir, settings.output_dir)
        self.media_service = media_service or MediaService()
        self.pipeline = EpisodePipeline(settings, self.file_service, self.media_service)

    @staticmethod
    def credentials(provider_name, username=None, password=None):
        """Explicit credentials win over providers.<name>.* in the config file"""
        return (
            username or get_config_value(f'providers.{provider_name}.username'),
            password or get_config_value(f'providers.{provider_name}.password'),
        )

    def login(self, provider_name, username, password):
        """Login-only flow: authenticate and leave the cookies in the cache dir."""
        provider = providers.detect_provider_by_name(provider_name)
        session = provider.session_cls()
        username, password = self.credentials(provider.name, username, password)
        session.login(username, password, self.settings.temp_dir)
        log_success(logger, f"Successfully logged in... Cookies saved to {self.settings.temp_dir}")
        return session

    def run(self, show_urls, username=None, password=None) -> List[ShowReport]:
        return [self.process_show(url, username, password) for url in show_urls]

    @staticmethod
    def _show_step(error_cls, description, action, *args):
        """Run one show-level phase; anything unexpected becomes ``error_cls``."""
        try:
            return action(*args)
        except AniripError:
            raise
        except Exception as e:
            raise error_cls(f"Unexpected failure while {description}", e) from e

    def _login(self, provider, username, password):
        session = provider.session_cls()
        user, secret = self.credentials(provider.name, username, password)
        session.login(user, secret, self.settings.temp_dir)
        return session

    @staticmethod
    def _scrape(provider, show_url, cookies):
        show = provider.show_cls()
        show.scrape_episodes(show_url, cookies)
        return show.get_title(), show.get_seasons()

    def process_show(self, show_url, username=None, password=None) -> ShowReport:
        report = ShowReport(url=show_url)
        try:
            provider = self._show_step(UnsupportedProviderError, "picking a provider",
                                       providers.detect_provider, show_url)
            report.provider = provider.name

            session = self._show_step(AuthenticationError, "logging in",
                                      self._login, provider, username, password)

            logger.info("Getting a list of episodes for the show...")
            report.title, seasons = self._show_step(MetadataFetchError, "listing episodes",
                                                    self._scrape, provider, show_url, session.get_cookies())

            for season in seasons:
                self._show_step(PlacementError, f"creating the folder for season {season.number}",
                                self.file_service.ensure_season_dir, report.title, season.number)
                for episode in season.episodes:
                    report.results.append(
                        self.pipeline.run(report.title, season.number, episode, session.get_cookies()))
        except AniripError as e:
            logger.error(f"{show_url}: {e}")
            report.error = e
            return report

        logger.info(f"Completed processing episodes for {report.title}: "
                    f"{len(report.completed)} downloaded, {len(report.skipped)} already present, "
                    f"{len(report.failed)} failed")
        return report
