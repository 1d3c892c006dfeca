"""Service layer modules."""

from .logging_service import LoggingService, setup_logging
from .file_service import FileService
from .media_service import MediaService
from .subtitle_service import SubtitleService
from .pipeline_service import DownloadSettings, EpisodePipeline, Orchestrator

__all__ = [
    'LoggingService',
    'setup_logging',
    'FileService',
    'MediaService',
    'SubtitleService',
    'DownloadSettings',
    'EpisodePipeline',
    'Orchestrator',
]
