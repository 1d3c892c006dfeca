"""Daisuki provider. Video and subtitles are fetched through yt-dlp."""

import glob
import logging
import os
import re
from typing import Optional
from urllib.parse import urljoin

import requests
import yt_dlp
from bs4 import BeautifulSoup
from yt_dlp.utils import DownloadError

from ..exceptions import AuthenticationError, MetadataFetchError, SubtitleFetchError
from ..models import Season
from ..services.media_service import SUBTITLE_FILE
from ..services.subtitle_service import FALLBACK_LANGUAGE, SubtitleService
from .base import USER_AGENT, ProviderEpisode, ProviderSession, ProviderShow, download_video, http_request, save_cookie_file

logger = logging.getLogger(__name__)

BASE_URL = 'https://www.daisuki.net'
LOGIN_URL = BASE_URL + '/bin/SignInServlet.html/input'

WATCH_HREF = re.compile(r'/anime/watch\.[^/]*?\.(\d+)\.html$')
EPISODE_NUMBER = re.compile(r'#\s*(\d+(?:\.\d+)?)')

# yt-dlp subtitle keys
LANGUAGE_CODES = {
    'English': 'en',
    'Spanish': 'es',
    'French': 'fr',
    'German': 'de',
    'Italian': 'it',
    'Portuguese': 'pt',
    'Arabic': 'ar',
    'Russian': 'ru',
}


def page_title(soup):
    """og:title of a show or episode page, or None"""
    meta = soup.find('meta', property='og:title')
    if meta is None or not meta.get('content'):
        return None
    return meta['content'].strip()


class DaisukiSession(ProviderSession):
    name = 'daisuki'
    auth_cookie_names = ('daisuki_member', 'dsk_member_id')

    def _authenticate(self, username, password):
        try:
            response = self.http.post(LOGIN_URL, data={
                'emailAddress': username,
                'password': password,
            }, timeout=30)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AuthenticationError(f"Unable to reach {self.name} to log in", e) from e


class DaisukiEpisode(ProviderEpisode):

    def get_episode_info(self, quality, cookies):
        page = http_request('GET', self.url, cookies, MetadataFetchError).text
        heading = page_title(BeautifulSoup(page, 'html.parser'))
        if not heading:
            raise MetadataFetchError(f"No episode metadata found at {self.url}")

        # "Show #3 Episode title"
        number = EPISODE_NUMBER.search(heading)
        if number:
            self.number = float(number.group(1))
            self.title = heading[number.end():].strip(' -:')
        else:
            self.title = heading
        self.quality = quality
        self.file_name = self.build_file_name()

    def download_episode(self, quality, temp_dir, cookies):
        self.video_path = download_video(self.url, quality, temp_dir, cookies, cookie_name='daisuki')

    def download_subtitles(self, language, offset_ms, temp_dir, cookies) -> Optional[str]:
        wanted = [LANGUAGE_CODES.get(language, language), LANGUAGE_CODES[FALLBACK_LANGUAGE]]
        for stale in glob.glob(os.path.join(temp_dir, 'subtitles.*')):
            os.remove(stale)

        opts = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "writesubtitles": True,
            "subtitleslangs": wanted,
            "user_agent": USER_AGENT,
            "outtmpl": os.path.join(temp_dir, "subtitles.%(ext)s"),
            "postprocessors": [{"key": "FFmpegSubtitlesConvertor", "format": "ass"}],
            "cookiefile": save_cookie_file(cookies, os.path.join(temp_dir, "daisuki.yt-dlp.cookies")),
        }
        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                ydl.download([self.url])
        except DownloadError as e:
            raise SubtitleFetchError(f"Unable to download subtitles for {self.url}", e) from e

        for code in wanted:
            path = os.path.join(temp_dir, f"subtitles.{code}.ass")
            if os.path.exists(path):
                target = os.path.join(temp_dir, SUBTITLE_FILE)
                os.replace(path, target)
                self.subtitle_path = SubtitleService().shift_file(target, offset_ms)
                return next((name for name, c in LANGUAGE_CODES.items() if c == code), code)

        logger.warning(f"No subtitle was found in either English or {language}...")
        return None


class DaisukiShow(ProviderShow):

    def scrape_episodes(self, show_url, cookies):
        page = http_request('GET', show_url, cookies, MetadataFetchError).text
        soup = BeautifulSoup(page, 'html.parser')

        self.title = page_title(soup)
        if not self.title:
            raise MetadataFetchError(f"No show title found at {show_url}")

        season = Season(number=1)
        seen = set()
        for link in soup.find_all('a', href=WATCH_HREF):
            media_id = WATCH_HREF.search(link['href']).group(1)
            if media_id in seen:
                continue
            seen.add(media_id)
            number = EPISODE_NUMBER.search(link.get_text(' ', strip=True))
            season.episodes.append(DaisukiEpisode(
                id=media_id,
                url=urljoin(BASE_URL, link['href']),
                show_title=self.title,
                season=1,
                number=float(number.group(1)) if number else None,
            ))

        if not season.episodes:
            raise MetadataFetchError(f"No episodes found at {show_url}")
        season.episodes.sort(key=lambda e: (e.number is None, e.number or 0))
        self.seasons = [season]
        logger.info(f"Found {len(season.episodes)} episodes of {self.title}")
