import pytest

from audio_viewer.domain.playback import (
    ControlsState,
    Paused,
    PlaybackAction,
    PlaybackStatus,
    Playing,
    Stopped,
    controls_for,
    transition,
)

ALL_STATES = [Stopped(), Playing(10), Paused(20)]


@pytest.mark.parametrize("state", ALL_STATES)
@pytest.mark.parametrize("action", list(PlaybackAction))
def test_every_state_action_pair_is_either_a_transition_or_a_rejected_noop(state, action):
    result = transition(state, action, 5)

    if result.accepted:
        assert result.reason == ""
    else:
        assert result.state is state
        assert action.name.lower() in result.reason


def test_pause_from_stopped_is_rejected():
    result = transition(Stopped(), PlaybackAction.PAUSE, 100)

    assert not result.accepted
    assert result.state == Stopped()


def test_play_resumes_from_paused_frame_not_requested_frame():
    result = transition(Paused(1234), PlaybackAction.PLAY, 0)

    assert result.accepted
    assert result.state == Playing(1234)


def test_play_while_playing_is_rejected():
    assert not transition(Playing(5), PlaybackAction.PLAY, 0).accepted


def test_stop_and_fail_are_accepted_from_any_state():
    for state in ALL_STATES:
        assert transition(state, PlaybackAction.STOP).state == Stopped()
        assert transition(state, PlaybackAction.FAIL).state == Stopped()


def test_seek_keeps_state_kind_and_replaces_frame():
    assert transition(Playing(1), PlaybackAction.SEEK, 50).state == Playing(50)
    assert transition(Paused(1), PlaybackAction.SEEK, 60).state == Paused(60)
    assert transition(Stopped(), PlaybackAction.SEEK, 70).state.kind is PlaybackStatus.STOPPED


def test_finish_only_applies_while_playing():
    assert transition(Playing(1), PlaybackAction.FINISH).state == Stopped()
    assert not transition(Paused(1), PlaybackAction.FINISH).accepted
    assert not transition(Stopped(), PlaybackAction.FINISH).accepted


def test_negative_frames_are_clamped():
    assert transition(Stopped(), PlaybackAction.PLAY, -10).state == Playing(0)


def test_controls_follow_state_and_enablement():
    assert controls_for(Stopped(), True) == ControlsState(play=True, pause=False, stop=False)
    assert controls_for(Playing(0), True) == ControlsState(play=False, pause=True, stop=True)
    assert controls_for(Paused(0), True) == ControlsState(play=True, pause=False, stop=True)
    assert controls_for(Playing(0), False) == ControlsState(False, False, False)
