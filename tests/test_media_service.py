import os
import subprocess

import pytest

from anirip.exceptions import CleanError, MergeError, TrimError
from anirip.services import media_service
from anirip.services.media_service import SUBTITLE_FILE, VIDEO_FILE, MediaService, language_tag


class FakeFfmpeg:
    def __init__(self, returncode=0):
        self.returncode = returncode
        self.commands = []

    def __call__(self, cmd, capture_output=False, text=False):
        self.commands.append(cmd)
        if self.returncode == 0:
            with open(cmd[-1], 'wb') as f:
                f.write(b'rewritten')
        return subprocess.CompletedProcess(cmd, self.returncode, '', 'boom')


@pytest.fixture
def workdir(tmp_path):
    with open(tmp_path / VIDEO_FILE, 'wb') as f:
        f.write(b'original')
    return str(tmp_path)


@pytest.fixture
def ffmpeg(monkeypatch):
    fake = FakeFfmpeg()
    monkeypatch.setattr(media_service.subprocess, 'run', fake)
    return fake


def read_video(workdir):
    with open(os.path.join(workdir, VIDEO_FILE), 'rb') as f:
        return f.read()


def test_trim(workdir, ffmpeg):
    MediaService('ffmpeg').trim_video(6747, workdir)
    cmd = ffmpeg.commands[0]
    assert cmd[cmd.index('-ss') + 1] == '6.747'
    assert cmd[-1] == os.path.join(workdir, VIDEO_FILE)
    assert read_video(workdir) == b'rewritten'
    assert sorted(os.listdir(workdir)) == [VIDEO_FILE]


def test_trim_failure_restores_video(workdir, monkeypatch):
    monkeypatch.setattr(media_service.subprocess, 'run', FakeFfmpeg(returncode=1))
    with pytest.raises(TrimError):
        MediaService('ffmpeg').trim_video(5040, workdir)
    assert read_video(workdir) == b'original'


def test_merge(workdir, ffmpeg):
    open(os.path.join(workdir, SUBTITLE_FILE), 'w').close()
    MediaService('ffmpeg').merge_subtitle_track('jpn', 'English (US)', workdir)
    cmd = ffmpeg.commands[0]
    assert os.path.join(workdir, SUBTITLE_FILE) in cmd
    assert 'language=eng' in cmd
    assert 'language=jpn' in cmd


def test_merge_without_subtitles(workdir, ffmpeg):
    with pytest.raises(MergeError):
        MediaService('ffmpeg').merge_subtitle_track('jpn', 'English', workdir)
    assert ffmpeg.commands == []


def test_clean_missing_video(tmp_path, ffmpeg):
    with pytest.raises(CleanError):
        MediaService('ffmpeg').clean_metadata(str(tmp_path))


def test_missing_binary(workdir, monkeypatch):
    def not_found(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(media_service.subprocess, 'run', not_found)
    with pytest.raises(CleanError):
        MediaService('definitely-not-ffmpeg').clean_metadata(workdir)
    assert read_video(workdir) == b'original'


@pytest.mark.parametrize('name, tag', [
    ('English (US)', 'eng'),
    ('Español (España)', 'spa'),
    ('Deutsch', 'ger'),
    ('jpn', 'jpn'),
    ('Klingon', 'und'),
    (None, 'und'),
])
def test_language_tag(name, tag):
    assert language_tag(name) == tag
