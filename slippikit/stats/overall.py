from collections import defaultdict

from .common import FRAMES_PER_MINUTE
from .computer import PlayerPermutation
from .stat_types import ConversionData, InputCounts, OpeningType, OverallStats, Ratio, StockData


def get_ratio(count: float, total: float) -> Ratio:
    return Ratio(count, total, count / total if total else None)


def _group_by_player(stats) -> dict[int, list]:
    grouped = defaultdict(list)
    for stat in stats:
        grouped[stat.player_index].append(stat)
    return grouped


def _group_by_opening(conversions: list[ConversionData]) -> dict[OpeningType, list[ConversionData]]:
    grouped = defaultdict(list)
    for conversion in conversions:
        grouped[conversion.opening_type].append(conversion)
    return grouped


def get_opening_ratio(
    conversions_by_opening: dict[int, dict[OpeningType, list[ConversionData]]],
    player_index: int,
    opponent_index: int,
    opening_type: OpeningType,
) -> Ratio:
    """This player's share of all openings of the given type in the game"""
    openings = len(conversions_by_opening[player_index][opening_type])
    opponent_openings = len(conversions_by_opening[opponent_index][opening_type])
    return get_ratio(openings, openings + opponent_openings)


def get_beneficial_trade_ratio(
    conversions_by_opening: dict[int, dict[OpeningType, list[ConversionData]]],
    player_index: int,
    opponent_index: int,
) -> Ratio:
    """Share of this player's trades that came out in their favour.

    Trades are paired up in order with the opponent's trades. A trade benefits the player if it killed while the
    opponent's didn't, or if it dealt more damage."""
    player_trades = conversions_by_opening[player_index][OpeningType.TRADE]
    opponent_trades = conversions_by_opening[opponent_index][OpeningType.TRADE]

    benefits_player = 0
    for player_trade, opponent_trade in zip(player_trades, opponent_trades):
        if player_trade.did_kill and not opponent_trade.did_kill:
            benefits_player += 1
        elif player_trade.damage_dealt() > opponent_trade.damage_dealt():
            benefits_player += 1

    return get_ratio(benefits_player, len(player_trades))


def generate_overall_stats(
    permutations: list[PlayerPermutation],
    inputs: list[InputCounts],
    stocks: list[StockData],
    conversions: list[ConversionData],
    playable_frame_count: int,
) -> list[OverallStats]:
    """Combines the other computers' results into per-player summary stats. One entry per permutation."""
    inputs_by_player = {counts.player_index: counts for counts in inputs}
    stocks_by_player = _group_by_player(stocks)
    conversions_by_player = _group_by_player(conversions)
    conversions_by_opening = defaultdict(lambda: defaultdict(list))
    for player_index, player_conversions in conversions_by_player.items():
        conversions_by_opening[player_index] = _group_by_opening(player_conversions)

    game_minutes = playable_frame_count / FRAMES_PER_MINUTE

    overall = []
    for permutation in permutations:
        player_index = permutation.player_index
        opponent_index = permutation.opponent_index

        input_counts = inputs_by_player.get(player_index)
        input_count = input_counts.input_count if input_counts is not None else 0

        player_conversions = conversions_by_player[player_index]
        successful_conversion_count = len([c for c in player_conversions if len(c.moves) > 1])
        conversion_count = len(player_conversions)

        opponent_stocks = stocks_by_player[opponent_index]
        total_damage = sum(stock.current_percent or 0 for stock in opponent_stocks)
        kill_count = len([stock for stock in opponent_stocks if stock.end_frame is not None])

        overall.append(
            OverallStats(
                player_index=player_index,
                opponent_index=opponent_index,
                input_count=input_count,
                conversion_count=conversion_count,
                total_damage=total_damage,
                kill_count=kill_count,
                successful_conversions=get_ratio(successful_conversion_count, conversion_count),
                inputs_per_minute=get_ratio(input_count, game_minutes),
                openings_per_kill=get_ratio(conversion_count, kill_count),
                damage_per_opening=get_ratio(total_damage, conversion_count),
                neutral_win_ratio=get_opening_ratio(
                    conversions_by_opening, player_index, opponent_index, OpeningType.NEUTRAL_WIN
                ),
                counter_hit_ratio=get_opening_ratio(
                    conversions_by_opening, player_index, opponent_index, OpeningType.COUNTER_ATTACK
                ),
                beneficial_trade_ratio=get_beneficial_trade_ratio(conversions_by_opening, player_index, opponent_index),
            )
        )

    return overall
