import pytest

from anirip.utils.file_utils import (
    build_episode_file_name,
    detect_file_encoding,
    sanitize_filename,
    season_display_name,
)
from anirip.utils.time_utils import format_ass_time, parse_ass_time, shift_ass_time

SEASONS = ['Specials', 'Season One', 'Season Two', 'Season Three', 'Season Four', 'Season Five',
           'Season Six', 'Season Seven', 'Season Eight', 'Season Nine', 'Season Ten']


@pytest.mark.parametrize('number, name', list(enumerate(SEASONS)))
def test_season_display_name(number, name):
    assert season_display_name(number) == name


def test_season_display_name_past_table():
    assert season_display_name(11) == 'Season 11'


def test_parse_ass_time():
    assert parse_ass_time('0:00:01.50') == 1500
    assert parse_ass_time('1:02:03.04') == 3723040
    assert parse_ass_time('0:00:01.5') == 1500


def test_parse_ass_time_rejects_garbage():
    with pytest.raises(ValueError):
        parse_ass_time('00:00:01,500')


def test_format_ass_time_truncates_to_centiseconds():
    assert format_ass_time(8247) == '0:00:08.24'
    assert format_ass_time(3723040) == '1:02:03.04'


def test_shift_keeps_hour_width():
    assert shift_ass_time('00:00:01.50', 5040) == '00:00:06.54'
    assert shift_ass_time('0:59:59.99', 10) == '1:00:00.00'


def test_shift_zero_is_verbatim():
    assert shift_ass_time('0:00:1.5', 0) == '0:00:1.5'


def test_sanitize_filename():
    assert sanitize_filename('Re:Zero / Part 2?') == 'Re_Zero _ Part 2_'
    assert sanitize_filename('  ') == 'unnamed'
    assert sanitize_filename('Title...') == 'Title'


def test_sanitize_filename_caps_length():
    name = sanitize_filename('あ' * 200)
    assert len(name.encode('utf-8')) <= 200


def test_build_episode_file_name():
    assert build_episode_file_name('Ripper Test', 1, 3) == 'Ripper Test - S01E03'
    assert build_episode_file_name('Ripper Test', 0, 12.5) == 'Ripper Test - S00E12.5'
    assert build_episode_file_name('Ripper: Test', 2, None) == 'Ripper_ Test - S02E00'


def test_build_episode_file_name_for_unnumbered_episode():
    assert build_episode_file_name('Ripper Test', 1, None, 'Recap (611000)') == 'Ripper Test - S01 - Recap (611000)'
    assert build_episode_file_name('Ripper Test', 1, 2, 'ignored') == 'Ripper Test - S01E02'


def test_detect_file_encoding():
    assert detect_file_encoding('Café'.encode('utf-8')) == 'utf-8'
    assert detect_file_encoding(b'\xef\xbb\xbfHello') == 'utf-8-sig'
