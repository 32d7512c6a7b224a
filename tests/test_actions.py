from slippikit.enums.state import ActionState
from slippikit.stats.actions import ActionsComputer


def run(feeder, states):
    computer = ActionsComputer()
    frames = feeder(computer)
    for state in states:
        frames.push(p0={"action_state": state})
    return computer.fetch()[0]


def test_dash_dance(feeder):
    counts = run(feeder, [ActionState.WAIT, ActionState.DASH, ActionState.TURN, ActionState.DASH])
    assert counts.dash_dance_count == 1


def test_single_frame_transitions(feeder):
    states = [
        ActionState.WAIT,
        ActionState.ESCAPE_F,
        ActionState.ESCAPE_F,
        ActionState.ESCAPE_B,
        ActionState.WAIT,
        ActionState.ESCAPE,
        ActionState.ESCAPE,
        ActionState.WAIT,
        ActionState.CLIFF_CATCH,
        ActionState.CLIFF_CATCH,
    ]
    counts = run(feeder, states)

    # Forward into backward roll is still the same roll
    assert counts.roll_count == 1
    assert counts.spot_dodge_count == 1
    assert counts.ledgegrab_count == 1
    assert counts.air_dodge_count == 0


def test_wavedash(feeder):
    states = [ActionState.WAIT] + [ActionState.KNEE_BEND] * 3 + [ActionState.ESCAPE_AIR] * 2
    counts = run(feeder, states + [ActionState.LAND_FALL_SPECIAL])

    assert counts.wavedash_count == 1
    assert counts.waveland_count == 0
    assert counts.air_dodge_count == 0


def test_waveland(feeder):
    states = [ActionState.FALL_F] * 8 + [ActionState.ESCAPE_AIR] * 2 + [ActionState.LAND_FALL_SPECIAL]
    counts = run(feeder, states)

    assert counts.waveland_count == 1
    assert counts.wavedash_count == 0
    assert counts.air_dodge_count == 0


def test_airdodge_into_ground_is_not_a_wavedash(feeder):
    states = [ActionState.ESCAPE_AIR] * 8 + [ActionState.LAND_FALL_SPECIAL]
    counts = run(feeder, states)

    assert counts.wavedash_count == 0
    assert counts.waveland_count == 0
    assert counts.air_dodge_count == 1


def test_special_landing_without_initiation_is_ignored(feeder):
    counts = run(feeder, [ActionState.KNEE_BEND, ActionState.WAIT, ActionState.LAND_FALL_SPECIAL])

    assert counts.wavedash_count == 0
    assert counts.waveland_count == 0


def test_each_permutation_is_tracked_separately(feeder):
    computer = ActionsComputer()
    frames = feeder(computer)
    frames.push(p0={"action_state": ActionState.WAIT}, p1={"action_state": ActionState.WAIT})
    frames.push(p0={"action_state": ActionState.ESCAPE}, p1={"action_state": ActionState.WAIT})

    player, opponent = computer.fetch()
    assert (player.player_index, player.spot_dodge_count) == (0, 1)
    assert (opponent.player_index, opponent.spot_dodge_count) == (1, 0)
