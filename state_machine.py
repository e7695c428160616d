# state_machine.py
import logging

from models import ElectionState
from errors import NotReady, ScheduleExpired, InvalidTransition, ElectionNotActive

logger = logging.getLogger(__name__)

# Ended and Canceled are terminal
TRANSITIONS = {
    ElectionState.created: {ElectionState.active, ElectionState.canceled},
    ElectionState.active: {ElectionState.paused, ElectionState.ended, ElectionState.canceled},
    ElectionState.paused: {ElectionState.active, ElectionState.ended, ElectionState.canceled},
    ElectionState.ended: set(),
    ElectionState.canceled: set(),
}

MIN_CANDIDATES_TO_START = 2


def can_transition(current: ElectionState, target: ElectionState) -> bool:
    return target in TRANSITIONS[current]


def _check_edge(election, target):
    if not can_transition(election.state, target):
        raise InvalidTransition(
            f"election {election.id}: {election.state.value} -> {target.value} is not allowed")


def start(election, now: int):
    if (election.state != ElectionState.created
            or election.candidate_count < MIN_CANDIDATES_TO_START
            or now < election.start_time):
        raise NotReady(f"election {election.id} cannot start yet")
    election.state = ElectionState.active


def pause(election, now: int):
    _check_edge(election, ElectionState.paused)
    election.state = ElectionState.paused


def resume(election, now: int):
    if election.state != ElectionState.paused:
        raise InvalidTransition(f"election {election.id} is not paused")
    if now > election.end_time:
        raise ScheduleExpired(f"election {election.id} is past its end time")
    election.state = ElectionState.active


def end(election, now: int):
    # ending before end_time is allowed
    _check_edge(election, ElectionState.ended)
    election.state = ElectionState.ended


def cancel(election, now: int):
    _check_edge(election, ElectionState.canceled)
    election.state = ElectionState.canceled


ACTIONS = {
    "start": start,
    "pause": pause,
    "resume": resume,
    "end": end,
    "cancel": cancel,
}


def voting_open(election, now: int) -> bool:
    return (election.state == ElectionState.active
            and election.start_time <= now <= election.end_time)


def require_voting_open(election, now: int):
    if not voting_open(election, now):
        raise ElectionNotActive(f"election {election.id} is not accepting votes")
