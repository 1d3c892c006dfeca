import os

import pytest

from anirip.config.config_manager import ConfigManager, set_config_manager

FIXTURES = os.path.join(os.path.dirname(__file__), 'fixtures')


def fixture_path(name):
    return os.path.join(FIXTURES, name)


def read_fixture(name, mode='rb'):
    with open(fixture_path(name), mode) as f:
        return f.read()


@pytest.fixture(autouse=True)
def empty_config(tmp_path):
    """Keep a developer's ~/.config/anirip/config.yml out of the tests"""
    set_config_manager(ConfigManager(str(tmp_path / 'no-config.yml')))
    yield
    set_config_manager(None)


@pytest.fixture
def payload_xml():
    return read_fixture('subtitle_payload_160983.xml', 'r')


@pytest.fixture
def script_xml():
    return read_fixture('subtitle_script_160983.xml')


