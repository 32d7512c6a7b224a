from .console import ConnectionEvent, ConnectionStatus, ConsoleConnection, PositionMismatchError, Ports
from .event import MAX_ROLLBACK_FRAMES, Command, Frame, Frames, GameEnd, GameStart, PostFrameUpdate, PreFrameUpdate
from .game import SlippiGame, UnsupportedInputError, get_stats
from .metadata import Metadata
from .parse import ParseError, parse
from .parser import ParseEvent, SlpParser, StrictFinalizationError
from .stats import PlayerCountError, Stats
from .stream import NETWORK_MESSAGE, SlpStream, StreamEvent, StreamMode
from .writer import SlpFileWriter, SlpWriter, WriterEvent
from .enums import *
