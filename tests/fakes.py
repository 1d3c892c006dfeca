"""Network-free stand-ins for providers and ffmpeg"""

import os

from anirip.exceptions import MergeError
from anirip.models import Season, Subtitle
from anirip.providers.base import ProviderEpisode, ProviderSession, ProviderShow
from anirip.services.media_service import SUBTITLE_FILE, VIDEO_FILE
from anirip.services.subtitle_service import SubtitleService, parse_payload

PAYLOAD = os.path.join(os.path.dirname(__file__), 'fixtures', 'subtitle_payload_160983.xml')


class FakeEpisode(ProviderEpisode):
    """Episode that records every provider call instead of touching the network"""

    fail_on = None
    subtitle_mode = 'encrypted'
    info_number = 1

    def _record(self, call):
        self.calls.append(call)
        if self.fail_on == call:
            raise RuntimeError(f"{call} exploded")

    def get_episode_info(self, quality, cookies):
        self._record('info')
        self.quality = quality
        if self.number is None:
            self.number = self.info_number
            self.file_name = self.build_file_name()

    def download_episode(self, quality, temp_dir, cookies):
        self._record('video')
        with open(os.path.join(temp_dir, VIDEO_FILE), 'wb') as f:
            f.write(b'mkv:' + self.id.encode())

    def download_subtitles(self, language, offset_ms, temp_dir, cookies):
        self._record('subtitles')
        self.offsets.append(offset_ms)
        if self.subtitle_mode == 'none':
            return None
        with open(PAYLOAD, encoding='utf-8') as f:
            track = parse_payload(f.read(), Subtitle(id=0))
        service = SubtitleService()
        service.write_ass(service.decrypt_to_ass(track, offset_ms), os.path.join(temp_dir, SUBTITLE_FILE))
        return 'English (US)'


def make_episode(episode_id, number, show_title='Ripper Test', season=1, **attrs):
    episode = FakeEpisode(id=episode_id, url=f'https://example.test/{episode_id}',
                          show_title=show_title, season=season, number=number)
    episode.calls = []
    episode.offsets = []
    for name, value in attrs.items():
        setattr(episode, name, value)
    return episode


class FakeMediaService:
    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def _record(self, call):
        self.calls.append(call)
        if self.fail_on == call[0]:
            raise MergeError(f"{call[0]} failed")

    def trim_video(self, duration_ms, working_dir):
        self._record(('trim', duration_ms))

    def merge_subtitle_track(self, video_language, subtitle_language, working_dir):
        self._record(('merge', video_language, subtitle_language))

    def clean_metadata(self, working_dir):
        self._record(('clean',))


class FakeSession(ProviderSession):
    name = 'fake'
    auth_cookie_names = ('fake_user',)
    accept = True

    def _authenticate(self, username, password):
        if self.accept:
            self.http.cookies.set('fake_user', username, domain='example.test')


class FakeShow(ProviderShow):
    episodes = []

    def scrape_episodes(self, show_url, cookies):
        self.title = 'Ripper Test'
        self.seasons = [Season(number=1, episodes=list(self.episodes))]
