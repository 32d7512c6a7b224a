from .actions import ActionsComputer
from .combo import ComboComputer
from .computer import ComputerBase, PlayerCountError, PlayerPermutation, get_singles_permutations
from .conversion import ConversionComputer
from .engine import Stats
from .inputs import InputComputer
from .overall import generate_overall_stats
from .stat_types import (
    ActionCounts,
    ComboData,
    Combos,
    ConversionData,
    Conversions,
    GameStats,
    InputCounts,
    MoveLanded,
    OpeningType,
    OverallStats,
    Ratio,
    StockData,
    Stocks,
)
from .stock import StockComputer
