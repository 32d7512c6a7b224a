from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import tzlocal

from .enums.character import InGameCharacter
from .event import Frames
from .util import Base, Enum, try_enum

# Timezone & fractional seconds aren't always provided, strptime lacks support for optional components
START_AT_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(?:Z|\+(\d{2})(\d{2}))?$")


def parse_start_at(raw_date: str) -> datetime | None:
    """Parses the recorder's ISO-ish timestamp and converts it to the local timezone of the machine doing the
    parsing. Returns None if the timestamp isn't recognized."""
    match = START_AT_PATTERN.search(raw_date.rstrip("\x00"))  # workaround for Nintendont/Slippi<1.5 bug
    if match is None:
        return None

    year, month, day, hour, minute, second, fraction, tz_hours, tz_minutes = match.groups()
    # Only the first 6 digits of the fraction fit in a datetime
    microsecond = int((fraction or "0").ljust(6, "0")[:6])
    offset = timezone(timedelta(hours=int(tz_hours or 0), minutes=int(tz_minutes or 0)))

    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond, offset
    ).astimezone(tzlocal.get_localzone())


class Metadata(Base):
    """
    Miscellaneous data not directly provided by Melee, written by the recorder once the game is over.

    date : datetime | None
        Game start date & time
    duration : int | None
        Total duration of game in frames. Counts pre-go frames, so it will not match the in-game timer.
    last_frame : int | None
        Index of the final frame
    platform : Metadata.Platform | str | None
        Platform the game was played on (console/dolphin)
    players : tuple[Metadata.Player | None]
        Player metadata by player index (port 1 is at index 0; empty ports will contain None)
    console_name: str | None
        Name of the console the game was played on, if any
    """

    date: datetime | None
    duration: int | None
    last_frame: int | None
    platform: Metadata.Platform | str | None
    players: tuple[Metadata.Player | None, ...]
    console_name: str | None

    def __init__(
        self,
        date: datetime | None,
        last_frame: int | None,
        platform: Metadata.Platform | str | None,
        players: tuple[Metadata.Player | None, ...],
        console_name: str | None = None,
    ):
        self.date = date
        self.last_frame = last_frame
        # Duration is stored as the final frame index + the "pre-Go" frames.
        self.duration = 1 + last_frame - Frames.FIRST if last_frame is not None else None
        self.platform = platform
        self.players = players
        self.console_name = console_name

    @classmethod
    def _parse(cls, json: dict) -> Metadata:
        raw_date = json.get("startAt")
        date = parse_start_at(raw_date) if raw_date else None

        played_on = json.get("playedOn")
        platform = try_enum(cls.Platform, played_on) if played_on is not None else None

        players = [None, None, None, None]
        for index, player in json.get("players", {}).items():
            players[int(index)] = cls.Player._parse(player)

        return cls(
            date=date,
            last_frame=json.get("lastFrame"),
            platform=platform,
            players=tuple(players),
            console_name=json.get("consoleNick"),
        )

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return (
            self.date == other.date
            and self.duration == other.duration
            and self.platform == other.platform
            and self.players == other.players
            and self.console_name == other.console_name
        )

    class Player(Base):
        """Contains metadata from the perspective of slippi.

        Attributes:
        characters : dict[InGameCharacter | int, int]
            Character(s) used, with usage duration in frames. Contains multiple characters for Sheik/Zelda
        connect_code : str | None
            Connect code in the traditional slippi format "CODE#123"
        display_name : str | None
            Slippi.gg display name, max of 15 characters
        """

        characters: dict[InGameCharacter | int, int]
        connect_code: str | None
        display_name: str | None

        def __init__(
            self,
            characters: dict[InGameCharacter | int, int],
            connect_code: str | None = None,
            display_name: str | None = None,
        ):
            self.characters = characters
            self.connect_code = connect_code
            self.display_name = display_name

        @classmethod
        def _parse(cls, json: dict) -> Metadata.Player:
            characters = {}
            for char_id, duration in json.get("characters", {}).items():
                characters[try_enum(InGameCharacter, int(char_id))] = duration

            names = json.get("names", {})
            return cls(characters, connect_code=names.get("code"), display_name=names.get("netplay"))

        def __eq__(self, other):
            if not isinstance(other, self.__class__):
                return NotImplemented
            return (
                self.characters == other.characters
                and self.connect_code == other.connect_code
                and self.display_name == other.display_name
            )

    class Platform(Enum):
        CONSOLE = "console"
        DOLPHIN = "dolphin"
        NETWORK = "network"
        NINTENDONT = "nintendont"
