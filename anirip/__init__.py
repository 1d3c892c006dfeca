"""
Anime Ripper

Logs into streaming providers, discovers the episodes of a show, downloads
video and subtitles and assembles one playable MKV per episode.
"""

__version__ = "1.4.0"
__author__ = "anirip contributors"
