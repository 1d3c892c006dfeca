"""Provider capability set shared by every streaming site."""

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from http.cookiejar import LoadError, MozillaCookieJar
from typing import List, Optional

import requests
import yt_dlp
from yt_dlp.utils import DownloadError

from ..exceptions import AuthenticationError, VideoFetchError
from ..models import Episode, Season, Show
from ..services.media_service import VIDEO_FILE
from ..utils.file_utils import build_episode_file_name

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/115.0"
REQUEST_TIMEOUT = 30


def http_request(method, url, cookies, error_cls, **kwargs):
    """Issue an HTTP request and raise ``error_cls`` on any transport or status failure"""
    headers = {'User-Agent': USER_AGENT}
    headers.update(kwargs.pop('headers', {}))
    try:
        response = requests.request(method, url, cookies=cookies, headers=headers,
                                    timeout=REQUEST_TIMEOUT, **kwargs)
        response.raise_for_status()
    except requests.RequestException as e:
        raise error_cls(f"{method} {url} failed", e) from e
    return response


def save_cookie_file(cookies, path):
    """Write a cookie jar in Netscape format so yt-dlp and later runs can read it"""
    jar = MozillaCookieJar(path)
    for cookie in cookies:
        jar.set_cookie(cookie)
    jar.save(ignore_discard=True, ignore_expires=True)
    return path


def quality_height(quality):
    """'1080p' -> 1080"""
    match = re.match(r'^\s*(\d+)', quality or '')
    return int(match.group(1)) if match else None


def download_video(url, quality, temp_dir, cookies, cookie_name='session'):
    """Let yt-dlp fetch the episode into ``<temp_dir>/episode.mkv``.

    Raises:
        VideoFetchError: yt-dlp failed or produced no file
    """
    class QuietLogger:
        def debug(self, msg):
            pass

        def warning(self, msg):
            logger.warning(msg)

        def error(self, msg):
            logger.error(msg)

    target = os.path.join(temp_dir, VIDEO_FILE)
    if os.path.exists(target):
        os.remove(target)

    height = quality_height(quality)
    if height:
        video_format = f"bestvideo[height<={height}]+bestaudio/best[height<={height}]/best"
    else:
        video_format = "bestvideo+bestaudio/best"

    opts = {
        "logger": QuietLogger(),
        "quiet": True,
        "no_warnings": True,
        "noplaylist": True,
        "cachedir": False,
        "user_agent": USER_AGENT,
        "format": video_format,
        "outtmpl": os.path.join(temp_dir, "episode.%(ext)s"),
        "merge_output_format": "mkv",
        "remuxvideo": "mkv",
        "cookiefile": save_cookie_file(cookies, os.path.join(temp_dir, f"{cookie_name}.yt-dlp.cookies")),
    }
    try:
        with yt_dlp.YoutubeDL(opts) as ydl:
            ydl.download([url])
    except DownloadError as e:
        raise VideoFetchError(f"Unable to download video from {url}", e) from e

    if not os.path.exists(target):
        raise VideoFetchError(f"Download of {url} did not produce {VIDEO_FILE}")
    return target


class ProviderSession(ABC):
    """Authenticated cookie set for one provider"""

    name = ''
    auth_cookie_names = ()

    def __init__(self):
        self.http = requests.Session()
        self.http.headers['User-Agent'] = USER_AGENT
        self.username = None

    def cookie_file(self, cache_dir):
        return os.path.join(cache_dir, f"{self.name}.cookies")

    def get_cookies(self):
        return self.http.cookies

    def is_authenticated(self):
        return any(cookie.name in self.auth_cookie_names for cookie in self.http.cookies)

    def login(self, username, password, cache_dir):
        """Reuse cached cookies when they still hold a session, otherwise sign in.

        Raises:
            AuthenticationError: the provider rejected the credentials
        """
        self.username = username
        if self._load_cached(cache_dir) and self.is_authenticated():
            logger.info(f"Using cached {self.name} session from {self.cookie_file(cache_dir)}")
            return

        if not username or not password:
            raise AuthenticationError(f"No cached {self.name} session and no credentials given")

        logger.info(f"Logging in to {self.name} as {username}...")
        self._authenticate(username, password)
        if not self.is_authenticated():
            raise AuthenticationError(f"{self.name} did not accept the credentials for {username}")

        os.makedirs(cache_dir, exist_ok=True)
        save_cookie_file(self.http.cookies, self.cookie_file(cache_dir))
        logger.debug(f"Saved {self.name} cookies to {self.cookie_file(cache_dir)}")

    def _load_cached(self, cache_dir):
        path = self.cookie_file(cache_dir)
        if not os.path.exists(path):
            return False
        jar = MozillaCookieJar(path)
        try:
            jar.load(ignore_discard=True)
        except (LoadError, OSError) as e:
            logger.warning(f"Ignoring unreadable cookie cache {path}: {e}")
            return False
        for cookie in jar:
            self.http.cookies.set_cookie(cookie)
        return True

    @abstractmethod
    def _authenticate(self, username, password):
        """Post the credentials; cookies land in ``self.http.cookies``"""


@dataclass
class ProviderEpisode(Episode, ABC):
    """An episode that knows how to fetch its own info, video and subtitles"""

    def __post_init__(self):
        # Numbered episodes can be checked against disk before any request
        if not self.file_name and self.number is not None:
            self.file_name = self.build_file_name()

    def build_file_name(self):
        label = None
        if self.number is None:
            label = f"{self.title} ({self.id})" if self.title else str(self.id)
        return build_episode_file_name(self.show_title, self.season, self.number, label)

    def get_file_name(self):
        return self.file_name

    @abstractmethod
    def get_episode_info(self, quality, cookies):
        """Fill title, number and file name. Raises MetadataFetchError."""

    @abstractmethod
    def download_episode(self, quality, temp_dir, cookies):
        """Write ``<temp_dir>/episode.mkv``. Raises VideoFetchError."""

    @abstractmethod
    def download_subtitles(self, language, offset_ms, temp_dir, cookies) -> Optional[str]:
        """Write ``<temp_dir>/subtitles.ass`` shifted by ``offset_ms``.

        Returns the resolved language, or None when the episode has no usable
        subtitle track. Raises SubtitleFetchError / SubtitleDecryptError.
        """


class ProviderShow(Show, ABC):
    """A show whose seasons and episodes are discovered from its page"""

    def get_title(self):
        return self.title

    def get_seasons(self) -> List[Season]:
        return self.sorted_seasons()

    @abstractmethod
    def scrape_episodes(self, show_url, cookies):
        """Populate title and seasons. Raises MetadataFetchError."""
