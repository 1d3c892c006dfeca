"""File utility functions."""

import hashlib
import logging
import re

import chardet

logger = logging.getLogger(__name__)

SEASON_NAMES = {
    0: 'Specials',
    1: 'Season One',
    2: 'Season Two',
    3: 'Season Three',
    4: 'Season Four',
    5: 'Season Five',
    6: 'Season Six',
    7: 'Season Seven',
    8: 'Season Eight',
    9: 'Season Nine',
    10: 'Season Ten',
}


def season_display_name(number):
    """Directory name for a season number; ``Season N`` past the named table."""
    return SEASON_NAMES.get(number, f"Season {number}")


def detect_file_encoding(raw_bytes):
    """Guess the text encoding of downloaded subtitle bytes"""
    if raw_bytes.startswith(b'\xef\xbb\xbf'):
        return 'utf-8-sig'
    try:
        raw_bytes.decode('utf-8')
        return 'utf-8'
    except UnicodeDecodeError:
        pass

    result = chardet.detect(raw_bytes)
    if result['encoding'] and result['confidence'] > 0.7:
        return result['encoding']

    return 'latin-1'


def _truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes without splitting a character."""
    if max_bytes <= 0:
        return ""

    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text

    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def sanitize_filename(filename):
    """Strip characters that are illegal on common filesystems and cap the length"""
    illegal_chars = r'[<>:"/\\|?*／：｜]'
    control_chars = ''.join(map(chr, list(range(0, 32)) + list(range(127, 160))))
    trans = str.maketrans('', '', control_chars)

    clean_name = re.sub(illegal_chars, '_', filename)
    clean_name = clean_name.translate(trans)
    clean_name = re.sub(r'\s+', ' ', clean_name).strip()
    # Windows refuses names ending in a dot or space
    clean_name = clean_name.rstrip('. ')
    hash_source = clean_name

    if not clean_name:
        return 'unnamed'

    max_bytes = 200
    if len(clean_name.encode("utf-8")) > max_bytes:
        hash_suffix = '_' + hashlib.sha1(hash_source.encode('utf-8')).hexdigest()[:6]
        truncated = _truncate_utf8(clean_name, max_bytes - len(hash_suffix)).rstrip(' _-.')
        clean_name = f"{truncated or 'file'}{hash_suffix}"

    return clean_name


def format_episode_number(number):
    """``3`` -> ``03``, ``12.5`` -> ``12.5``"""
    if number is None:
        return '00'
    if float(number).is_integer():
        return f"{int(number):02d}"
    return f"{float(number):04.1f}"


def build_episode_file_name(show_title, season_number, episode_number, label=None):
    """Human readable base name, e.g. ``Show - S01E03``.

    Unnumbered episodes (OVAs, recaps) use ``label`` instead of the episode
    number, e.g. ``Show - S01 - Recap (611000)``, so they never share a name.
    """
    if episode_number is None and label:
        return sanitize_filename(f"{show_title} - S{season_number:02d} - {label}")
    return sanitize_filename(f"{show_title} - S{season_number:02d}E{format_episode_number(episode_number)}")

