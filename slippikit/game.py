from __future__ import annotations

import concurrent.futures
import os

import polars as pl

from .event import Frame, GameEnd, GameStart
from .log import log
from .metadata import Metadata
from .parse import SlpFile, get_metadata, iterate_events, open_slp_file
from .parser import ParseEvent, SlpParser
from .stats.actions import ActionsComputer
from .stats.combo import ComboComputer
from .stats.computer import PlayerCountError, get_singles_permutations, require_singles_permutations
from .stats.conversion import ConversionComputer
from .stats.engine import Stats
from .stats.inputs import InputComputer
from .stats.overall import generate_overall_stats
from .stats.stat_types import Conversions, GameStats
from .stats.stock import StockComputer


class UnsupportedInputError(TypeError):
    """SlippiGame was given something that is neither a path nor a bytes buffer."""

    pass


class SlippiGame:
    """A single replay, read lazily.

    Nothing is parsed on creation. Each query reads only as far as it needs to, and remembers where it stopped so
    the next query picks up from there. That makes it safe to call repeatedly on a replay that is still being
    written.

    :param source: replay path or raw replay bytes
    :param strict: raise StrictFinalizationError on incomplete frames
    :param process_on_the_fly: run the stats computers as frames are finalized instead of on `get_stats()`
    """

    file_path: str | os.PathLike | None
    buffer: bytes | None
    read_position: int | None
    parser: SlpParser
    stats: Stats

    def __init__(
        self,
        source: str | os.PathLike | bytes | bytearray,
        strict: bool = False,
        process_on_the_fly: bool = False,
    ):
        if isinstance(source, (str, os.PathLike)):
            self.file_path = source
            self.buffer = None
        elif isinstance(source, (bytes, bytearray, memoryview)):
            self.file_path = None
            self.buffer = bytes(source)
        else:
            raise UnsupportedInputError(f"Cannot create SlippiGame with input of type {type(source).__name__}")

        self.read_position = None
        self._final_stats = None
        self._metadata = None
        self._metadata_read = False

        self.actions_computer = ActionsComputer()
        self.conversion_computer = ConversionComputer()
        self.combo_computer = ComboComputer()
        self.stock_computer = StockComputer()
        self.input_computer = InputComputer()

        self.stats = Stats(process_on_the_fly=process_on_the_fly)
        self.stats.register(
            self.actions_computer,
            self.combo_computer,
            self.conversion_computer,
            self.input_computer,
            self.stock_computer,
        )

        self.parser = SlpParser(
            strict=strict,
            handlers={
                ParseEvent.SETTINGS: self._on_settings,
                ParseEvent.FINALIZED_FRAME: self.stats.add_frame,
            },
        )

    def _on_settings(self, settings: GameStart):
        self.stats.set_player_permutations(get_singles_permutations(settings))

    def _open(self) -> SlpFile:
        return open_slp_file(self.buffer if self.buffer is not None else self.file_path)

    def _process(self, settings_only: bool = False):
        if self.parser.get_game_end() is not None:
            return

        def handle(command, payload):
            # Commands the decoder doesn't know about, keep going
            if payload is None:
                return False
            self.parser.handle_command(command, payload)
            return settings_only and self.parser.get_settings() is not None

        with self._open() as slp_file:
            self.read_position = iterate_events(slp_file, handle, self.read_position)
        log.debug(f"read up to {self.read_position}")

    def get_settings(self) -> GameStart | None:
        """Information used to initialize the game such as the game mode, settings, characters & stage.

        Only reads as far as needed to finalize the settings."""
        self._process(settings_only=True)
        return self.parser.get_settings()

    def get_latest_frame(self) -> Frame | None:
        self._process()
        return self.parser.get_latest_frame()

    def get_frames(self) -> dict[int, Frame]:
        self._process()
        return self.parser.get_frames()

    def get_game_end(self) -> GameEnd | None:
        self._process()
        return self.parser.get_game_end()

    def get_stats(self) -> GameStats:
        """Runs every stats computer over the frames read so far.

        Once the game has ended the result can't change anymore, so it is computed once and returned as-is on
        subsequent calls."""
        if self._final_stats is not None:
            return self._final_stats

        self._process()
        self.stats.process()

        inputs = self.input_computer.fetch()
        stocks = self.stock_computer.fetch()
        conversions = self.conversion_computer.fetch()
        permutations = get_singles_permutations(self.parser.get_settings())
        playable_frame_count = self.parser.get_playable_frame_count()

        game_stats = GameStats(
            last_frame=self.parser.get_latest_frame_number(),
            playable_frame_count=playable_frame_count,
            stocks=stocks,
            conversions=conversions,
            combos=self.combo_computer.fetch(),
            action_counts=self.actions_computer.fetch(),
            overall=generate_overall_stats(permutations, inputs, stocks, conversions, playable_frame_count),
            game_complete=self.parser.get_game_end() is not None,
        )

        if game_stats.game_complete:
            self._final_stats = game_stats

        return game_stats

    def get_metadata(self) -> dict | None:
        """Raw metadata block, None if the replay doesn't have one (yet)"""
        if not self._metadata_read:
            with self._open() as slp_file:
                self._metadata = get_metadata(slp_file)
            # A missing block could still be written later
            self._metadata_read = self._metadata is not None
        return self._metadata

    def get_parsed_metadata(self) -> Metadata | None:
        metadata = self.get_metadata()
        return Metadata._parse(metadata) if metadata is not None else None

    def get_file_path(self) -> str | None:
        return os.fspath(self.file_path) if self.file_path is not None else None


def _conversions_for_file(path: str) -> tuple[pl.DataFrame | None, str]:
    game = SlippiGame(path)
    try:
        require_singles_permutations(game.get_settings())
    except PlayerCountError:
        return (None, path)

    conversions = game.get_stats().conversions
    return (Conversions(conversions, data_header={"file": path}).to_polars(), path)


def get_stats(directory: os.PathLike | str) -> pl.DataFrame:
    """Multiprocessed stats computation for handling bulk replays. Replays that aren't 1v1s, and replays that fail to
    parse, are skipped.

    Args:
        directory : os.PathLike | str
            Path of the directory the replays are stored in
    Returns:
        pl.DataFrame
            Every conversion from every processed replay, with a `file` column holding the replay's path
    """
    results = []

    with os.scandir(directory) as entries:
        paths = [os.path.join(directory, entry.name) for entry in entries if entry.name.endswith(".slp")]

    with concurrent.futures.ProcessPoolExecutor() as executor:
        futures = {executor.submit(_conversions_for_file, path) for path in paths}

        for future in concurrent.futures.as_completed(futures):
            if future.exception() is not None:
                log.warning(f"skipping replay: {future.exception()}")
                continue

            df, path = future.result()
            if df is None:
                log.warning(f"skipping {path}: not a 2 player game")
                continue

            log.debug(f"processed {path}")
            results.append(df)

    if not results:
        return Conversions(data_header={"file": ""}).to_polars()

    return pl.concat(results, how="vertical").sort(["file", "start_frame"])
