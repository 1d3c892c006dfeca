from anirip.config.config_manager import ConfigManager, get_config_value, set_config_manager
from anirip.services.pipeline_service import DownloadSettings


def write(tmp_path, text):
    path = tmp_path / 'config.yml'
    path.write_text(text, encoding='utf-8')
    return str(path)


def test_dotted_lookup(tmp_path):
    manager = ConfigManager(write(tmp_path, "download:\n  quality: 720p\n  trim: sunrise\n"))
    assert manager.get_config_value('download.quality') == '720p'
    assert manager.get_config_value('download.language', 'English') == 'English'
    assert manager.get_config_value('download.quality.height', 'x') == 'x'


def test_missing_file(tmp_path):
    manager = ConfigManager(str(tmp_path / 'nope.yml'))
    assert manager.get_config() == {}


def test_malformed_file(tmp_path):
    manager = ConfigManager(write(tmp_path, "download: [unclosed\n"))
    assert manager.get_config() == {}


def test_non_mapping_file(tmp_path):
    manager = ConfigManager(write(tmp_path, "- just\n- a list\n"))
    assert manager.get_config() == {}


def test_env_path(tmp_path, monkeypatch):
    monkeypatch.setenv('ANIRIP_CONFIG', write(tmp_path, "download:\n  language: Spanish\n"))
    assert ConfigManager().get_config_value('download.language') == 'Spanish'


def test_settings_from_config(tmp_path):
    set_config_manager(ConfigManager(write(tmp_path, (
        "download:\n"
        "  quality: 480p\n"
        "  trim: Aniplex+Sunrise\n"
        "  place_retries: 3\n"
        f"  temp_dir: {tmp_path / 'scratch'}\n"
    ))))
    settings = DownloadSettings.from_config(quality='720p')
    assert get_config_value('download.quality') == '480p'
    assert settings.quality == '720p'
    assert settings.trim_studios == frozenset({'aniplex', 'sunrise'})
    assert settings.place_retries == 3
    assert settings.temp_dir == str(tmp_path / 'scratch')
