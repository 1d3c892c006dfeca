import os
import shutil

import pytest

from anirip.exceptions import PlacementError
from anirip.services import file_service
from anirip.services.file_service import FileService


@pytest.fixture
def service(tmp_path):
    return FileService(temp_dir=str(tmp_path / 'scratch'), output_dir=str(tmp_path / 'out'), retry_delay=0)


def test_paths(service, tmp_path):
    assert service.final_path('Ripper Test', 0, 'Ripper Test - S00E01') == os.path.join(
        str(tmp_path / 'out'), 'Ripper Test', 'Specials', 'Ripper Test - S00E01.mkv')
    created = service.ensure_season_dir('Ripper Test', 2)
    assert os.path.isdir(created)
    assert created.endswith(os.path.join('Ripper Test', 'Season Two'))


def test_place(service):
    source = service.temp_path('episode.mkv')
    with open(source, 'wb') as f:
        f.write(b'video')
    destination = service.final_path('Ripper Test', 1, 'Ripper Test - S01E01')

    assert service.place(source, destination) == destination
    assert service.exists(destination)
    assert not os.path.exists(source)


def test_place_retries_until_unlocked(service, monkeypatch):
    attempts = []
    real_move = shutil.move

    def flaky_move(src, dst):
        attempts.append(src)
        if len(attempts) < 3:
            raise PermissionError('file is locked')
        return real_move(src, dst)

    monkeypatch.setattr(file_service.shutil, 'move', flaky_move)
    source = service.temp_path('episode.mkv')
    open(source, 'wb').close()

    service.place(source, service.final_path('Ripper Test', 1, 'x'))
    assert len(attempts) == 3


def test_place_gives_up(service, monkeypatch):
    attempts = []

    def locked(src, dst):
        attempts.append(src)
        raise PermissionError('file is locked')

    monkeypatch.setattr(file_service.shutil, 'move', locked)
    with pytest.raises(PlacementError):
        service.place(service.temp_path('episode.mkv'), service.final_path('Ripper Test', 1, 'x'), attempts=10)
    assert len(attempts) == 10


def test_clear_temp_dir(service):
    open(service.temp_path('crunchyroll.cookies'), 'w').close()
    service.clear_temp_dir()
    assert os.path.isdir(service.temp_dir)
    assert os.listdir(service.temp_dir) == []
