"""Crunchyroll provider."""

import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..exceptions import AuthenticationError, MetadataFetchError, SubtitleFetchError
from ..models import Season
from ..services.media_service import SUBTITLE_FILE
from ..services.subtitle_service import SubtitleService, parse_listing, parse_payload, select_track
from .base import ProviderEpisode, ProviderSession, ProviderShow, download_video, http_request

logger = logging.getLogger(__name__)

BASE_URL = 'https://www.crunchyroll.com'
LOGIN_URL = BASE_URL + '/?a=formhandler'
XML_URL = BASE_URL + '/xml/'

# quality -> (video_format, video_quality) as the player requests them
QUALITIES = {
    '360p': ('106', '60'),
    '480p': ('106', '61'),
    '720p': ('106', '62'),
    '1080p': ('108', '80'),
}

MEDIA_ID = re.compile(r'-(\d+)$')
EPISODE_NUMBER = re.compile(r'Episode\s+(\d+(?:\.\d+)?)', re.I)


def get_xml(request, cookies, **params):
    """Call one of the player's RpcApi XML endpoints"""
    data = {'req': request}
    data.update(params)
    response = http_request('POST', XML_URL, cookies, SubtitleFetchError, data=data)
    return response.text


class CrunchyrollSession(ProviderSession):
    name = 'crunchyroll'
    auth_cookie_names = ('c_userid',)

    def _authenticate(self, username, password):
        try:
            # The form handler needs a session id before it accepts a login
            self.http.get(BASE_URL, timeout=30)
            response = self.http.post(LOGIN_URL, data={
                'formname': 'RpcApiUser_Login',
                'fail_url': BASE_URL + '/login',
                'name': username,
                'password': password,
            }, timeout=30)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AuthenticationError(f"Unable to reach {self.name} to log in", e) from e


class CrunchyrollEpisode(ProviderEpisode):

    def _standard_config(self, quality, cookies):
        if quality not in QUALITIES:
            logger.warning(f"Unknown quality {quality!r}, requesting 1080p instead")
        video_format, video_quality = QUALITIES.get(quality, QUALITIES['1080p'])
        try:
            text = get_xml('RpcApiVideoPlayer_GetStandardConfig', cookies,
                           media_id=self.id, video_format=video_format,
                           video_quality=video_quality, current_page=self.url)
            return ET.fromstring(text)
        except (SubtitleFetchError, ET.ParseError) as e:
            raise MetadataFetchError(f"Unable to get player config for media {self.id}", e) from e

    def get_episode_info(self, quality, cookies):
        config = self._standard_config(quality, cookies)
        metadata = config.find('.//media_metadata')
        if metadata is None:
            raise MetadataFetchError(f"Media {self.id} is not available in {quality} for this account")

        self.show_title = self.show_title or (metadata.findtext('series_title') or '').strip()
        self.title = (metadata.findtext('episode_title') or self.title).strip()
        number = (metadata.findtext('episode_number') or '').strip()
        if number:
            try:
                self.number = float(number)
            except ValueError:
                logger.debug(f"Non-numeric episode number {number!r} for media {self.id}")
        self.quality = quality
        self.file_name = self.build_file_name()

    def download_episode(self, quality, temp_dir, cookies):
        self.video_path = download_video(self.url, quality, temp_dir, cookies, cookie_name='crunchyroll')

    def download_subtitles(self, language, offset_ms, temp_dir, cookies) -> Optional[str]:
        tracks = parse_listing(get_xml('RpcApiSubtitle_GetListing', cookies, media_id=self.id))
        if tracks is None:
            logger.info("This episode has embedded subtitles...")
            return None

        track = select_track(tracks, language)
        if track is None:
            logger.warning(f"No subtitle was found in either English or {language}...")
            return None

        payload = get_xml('RpcApiSubtitle_GetXml', cookies, subtitle_script_id=track.id)
        track = parse_payload(payload, track)
        service = SubtitleService()
        self.subtitle_path = service.write_ass(service.decrypt_to_ass(track, offset_ms),
                                               os.path.join(temp_dir, SUBTITLE_FILE))
        return re.sub(r'^\[[^\]]*\]\s*', '', track.title) or track.title


class CrunchyrollShow(ProviderShow):

    def scrape_episodes(self, show_url, cookies):
        response = http_request('GET', show_url, cookies, MetadataFetchError)
        soup = BeautifulSoup(response.text, 'html.parser')

        title = soup.find('meta', property='og:title')
        if title is None or not title.get('content'):
            raise MetadataFetchError(f"No show title found at {show_url}")
        self.title = title['content'].strip()

        # The page lists seasons and episodes newest first
        blocks = soup.find_all('li', class_='season') or [soup]
        self.seasons = []
        for number, block in enumerate(reversed(blocks), start=1):
            season = Season(number=number)
            for link in reversed(block.find_all('a', class_='episode', href=True)):
                media_id = MEDIA_ID.search(link['href'])
                if not media_id:
                    continue
                episode_number = EPISODE_NUMBER.search(link.get_text(' ', strip=True))
                season.episodes.append(CrunchyrollEpisode(
                    id=media_id.group(1),
                    url=urljoin(BASE_URL, link['href']),
                    show_title=self.title,
                    season=number,
                    number=float(episode_number.group(1)) if episode_number else None,
                ))
            if season.episodes:
                self.seasons.append(season)

        if not self.seasons:
            raise MetadataFetchError(f"No episodes found at {show_url}")
        logger.info(f"Found {sum(len(s.episodes) for s in self.seasons)} episodes of {self.title}")
