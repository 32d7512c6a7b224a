from abc import ABC, abstractmethod
from collections import UserList
from dataclasses import dataclass, field

import polars as pl

from ..util import Enum
from .common import get_death_direction


class Stat(ABC):
    pass


class OpeningType(Enum):
    """How a conversion started, relative to the opponent's own conversions"""

    UNKNOWN = "unknown"
    TRADE = "trade"
    COUNTER_ATTACK = "counter-attack"
    NEUTRAL_WIN = "neutral-win"


# ----------------------------------- Moves ---------------------------------- #


@dataclass
class MoveLanded(Stat):
    """A single move within a combo or conversion. Multi-hit moves (e.g. drill, jab) count as one move.

    Attributes:
        frame : int
            Frame the first hit connected on
        move_id : int | None
            Attacker's `last_attack_landed` on that frame
        hit_count : int
        damage : float
    """

    frame: int
    move_id: int | None
    hit_count: int = 0
    damage: float = 0.0


# ------------------------------ Combo/Conversion ----------------------------- #


@dataclass
class ComboData(Stat):
    """Contains all data for a single combo.

    Attributes:
        player_index : int
            Attacker
        opponent_index : int
            Victim
        start_frame : int
        end_frame : int | None
            None while the combo is still going
        start_percent : float
            Victim's percent the frame before the combo started
        current_percent : float
            Victim's most recent percent, not updated on the frame a stock is lost
        end_percent : float | None
        moves : list[MoveLanded]
        did_kill : bool
    """

    player_index: int
    opponent_index: int
    start_frame: int
    end_frame: int | None = None
    start_percent: float = 0.0
    current_percent: float = 0.0
    end_percent: float | None = None
    moves: list[MoveLanded] = field(default_factory=list)
    did_kill: bool = False

    def damage_dealt(self) -> float:
        return self.current_percent - self.start_percent


@dataclass
class ConversionData(ComboData):
    """A punish. Same as ComboData, except the opponent getting back into a controllable state (rather than just
    leaving hitstun) starts the reset timer.

    Attributes:
        opening_type : OpeningType
            Filled in once every conversion in the game is known, UNKNOWN until then
    """

    opening_type: OpeningType = OpeningType.UNKNOWN


# ----------------------------------- Stock ---------------------------------- #


@dataclass
class StockData(Stat):
    """One stock (life) of a player.

    Attributes:
        player_index : int
            Player this stock belongs to
        opponent_index : int
        start_frame : int
            First frame the player was out of the dying animation
        end_frame : int | None
            Frame the stock was lost. None if the player still has it
        start_percent : float
        end_percent : float | None
            Percent the frame before the stock was lost
        current_percent : float
        count : int | None
            Stocks remaining when this stock started
        death_animation : int | None
            Action state on the frame the stock was lost, see `death_direction`
    """

    player_index: int
    opponent_index: int
    start_frame: int
    end_frame: int | None = None
    start_percent: float = 0.0
    end_percent: float | None = None
    current_percent: float = 0.0
    count: int | None = None
    death_animation: int | None = None

    @property
    def death_direction(self) -> str | None:
        if self.death_animation is None:
            return None
        return get_death_direction(self.death_animation)


# ---------------------------------- Counts ---------------------------------- #


@dataclass
class ActionCounts(Stat):
    player_index: int
    opponent_index: int
    wavedash_count: int = 0
    waveland_count: int = 0
    air_dodge_count: int = 0
    dash_dance_count: int = 0
    spot_dodge_count: int = 0
    ledgegrab_count: int = 0
    roll_count: int = 0


@dataclass
class InputCounts(Stat):
    player_index: int
    opponent_index: int
    input_count: int = 0


# ---------------------------------- Overall --------------------------------- #


@dataclass
class Ratio:
    """`ratio` is None when `total` is 0"""

    count: float
    total: float
    ratio: float | None


@dataclass
class OverallStats(Stat):
    player_index: int
    opponent_index: int
    input_count: int
    conversion_count: int
    total_damage: float
    kill_count: int
    successful_conversions: Ratio
    inputs_per_minute: Ratio
    openings_per_kill: Ratio
    damage_per_opening: Ratio
    neutral_win_ratio: Ratio
    counter_hit_ratio: Ratio
    beneficial_trade_ratio: Ratio


# --------------------------------- Wrappers --------------------------------- #


class StatList(ABC, UserList):
    """Iterable wrapper around a list of a single Stat type, with DataFrame export.

    `data_header` holds columns that are the same for every row (e.g. the source file) and is prepended to each row
    on export."""

    data: list[Stat]
    _data_header: dict
    _schema: dict

    def __init__(self, data=None, data_header: dict | None = None):
        super().__init__(data or [])
        self._data_header = data_header or {}

    @property
    @abstractmethod
    def _stat_type(self) -> type:
        pass

    def append(self, item):
        if isinstance(item, self._stat_type):
            UserList.append(self, item)
        else:
            raise TypeError(f"Incorrect stat type: {type(item)}, expected {self._stat_type.__name__}")

    def _full_schema(self) -> dict:
        return {key: pl.Utf8 for key in self._data_header} | self._schema

    def _row(self, stat) -> dict:
        return vars(stat).copy()

    def to_polars(self) -> pl.DataFrame:
        """Returns a Polars DataFrame representing the contents of the container.

        DataFrame creation is semantically equivalent to:
        ```
        if len(self.data) == 0:
            return pl.DataFrame([], schema=self._schema)
        else:
            return pl.DataFrame(
                [self._data_header | vars(stat) for stat in self.data if stat is not None], schema=self._schema
            )
        ```

        Some minor alterations are made per container-type to cast elements to Polars data types correctly.
        """
        schema = self._full_schema()
        if len(self.data) == 0:
            return pl.DataFrame([], schema=schema)
        return pl.DataFrame(
            [self._data_header | self._row(stat) for stat in self.data if stat is not None], schema=schema
        )


class Combos(StatList):
    """Iterable wrapper, treat as list[ComboData]."""

    data: list[ComboData]
    _schema = {
        "player_index": pl.Int64,
        "opponent_index": pl.Int64,
        "start_frame": pl.Int64,
        "end_frame": pl.Int64,
        "start_percent": pl.Float64,
        "current_percent": pl.Float64,
        "end_percent": pl.Float64,
        "move_count": pl.Int64,
        "did_kill": pl.Boolean,
    }

    @property
    def _stat_type(self):
        return ComboData

    def _row(self, stat):
        row = vars(stat).copy()
        row["move_count"] = len(row.pop("moves"))
        return row


class Conversions(Combos):
    """Iterable wrapper, treat as list[ConversionData]."""

    data: list[ConversionData]
    _schema = Combos._schema | {"opening_type": pl.Utf8}

    @property
    def _stat_type(self):
        return ConversionData

    def _row(self, stat):
        row = super()._row(stat)
        row["opening_type"] = stat.opening_type.value
        return row


class Stocks(StatList):
    """Iterable wrapper, treat as list[StockData]."""

    data: list[StockData]
    _schema = {
        "player_index": pl.Int64,
        "opponent_index": pl.Int64,
        "start_frame": pl.Int64,
        "end_frame": pl.Int64,
        "start_percent": pl.Float64,
        "end_percent": pl.Float64,
        "current_percent": pl.Float64,
        "count": pl.Int64,
        "death_animation": pl.Int64,
        "death_direction": pl.Utf8,
    }

    @property
    def _stat_type(self):
        return StockData

    def _row(self, stat):
        row = vars(stat).copy()
        row["death_direction"] = stat.death_direction
        return row


# ---------------------------------- Results --------------------------------- #


@dataclass
class GameStats:
    """Everything the stats computers produce for one game.

    Attributes:
        last_frame : int | None
            Latest frame number seen
        playable_frame_count : int
            Frames since players gained control
        stocks : Stocks
        conversions : Conversions
        combos : Combos
        action_counts : list[ActionCounts]
            One per player permutation
        overall : list[OverallStats]
            One per player permutation
        game_complete : bool
            True once GAME_END has been seen. Stats for an incomplete game may change on the next call
    """

    last_frame: int | None
    playable_frame_count: int
    stocks: Stocks
    conversions: Conversions
    combos: Combos
    action_counts: list[ActionCounts]
    overall: list[OverallStats]
    game_complete: bool
