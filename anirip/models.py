"""Data model shared by providers, the subtitle engine and the pipeline."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Subtitle:
    """One subtitle track as described by the provider's wire format.

    ``iv`` and ``data`` stay base64 encoded until decryption.
    """
    id: int
    link: str = ''
    title: str = ''
    default: bool = False
    delay: float = 0.0
    iv: str = ''
    data: str = ''


# Attribute name in the source document, numeric flag. Order is the
# column order of the ASS "Format:" line.
STYLE_FIELDS = (
    ('name', False),
    ('font_name', False),
    ('font_size', True),
    ('primary_colour', False),
    ('secondary_colour', False),
    ('outline_colour', False),
    ('back_colour', False),
    ('bold', True),
    ('italic', True),
    ('underline', True),
    ('strikeout', True),
    ('scale_x', True),
    ('scale_y', True),
    ('spacing', True),
    ('angle', True),
    ('border_style', True),
    ('outline', True),
    ('shadow', True),
    ('alignment', True),
    ('margin_l', False),
    ('margin_r', False),
    ('margin_v', False),
    ('encoding', True),
)

EVENT_FIELDS = (
    'start',
    'end',
    'style',
    'name',
    'margin_l',
    'margin_r',
    'margin_v',
    'effect',
    'text',
)


@dataclass
class Style:
    values: List[str]

    @property
    def name(self) -> str:
        return self.values[0]


@dataclass
class Event:
    values: List[str]

    @property
    def start(self) -> str:
        return self.values[0]

    @property
    def end(self) -> str:
        return self.values[1]

    @property
    def text(self) -> str:
        return self.values[-1]


@dataclass
class SubtitleDocument:
    """Parsed subtitle script: header values plus styles and events in source order."""
    title: str = ''
    play_res_x: int = 656
    play_res_y: int = 368
    wrap_style: str = '0'
    lang_code: str = ''
    lang_string: str = ''
    styles: List[Style] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)


@dataclass
class Episode:
    """Provider-neutral episode metadata plus transient download state."""
    id: str
    url: str
    show_title: str = ''
    season: int = 1
    title: str = ''
    number: Optional[float] = None
    file_name: str = ''
    quality: Optional[str] = None
    video_path: Optional[str] = None
    subtitle_path: Optional[str] = None


@dataclass
class Season:
    number: int
    episodes: list = field(default_factory=list)


@dataclass
class Show:
    title: str = ''
    seasons: List[Season] = field(default_factory=list)

    def sorted_seasons(self) -> List[Season]:
        return sorted(self.seasons, key=lambda s: s.number)
