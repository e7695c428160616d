# ballot.py
"""Ballot validation and application.

Every check runs before the first mutation, so a rejected ballot leaves the
voter, the candidates and the election total exactly as they were. The caller
commits the session.
"""
import logging
from typing import List

from models import Candidate, Voter, VotingType
from errors import (VoterNotRegistered, AlreadyVoted, InvalidCandidate, TooManyChoices,
                    EmptyBallot, DuplicateChoice, WrongVotingType)
import state_machine

logger = logging.getLogger(__name__)


def _voter_row(db, election, identity):
    return db.query(Voter).filter_by(election_id=election.id, identity=identity).first()


def _check_eligible(election, voter):
    if election.requires_registration and not (voter and voter.is_registered):
        raise VoterNotRegistered(f"voter is not registered for election {election.id}")
    if voter and voter.has_voted:
        raise AlreadyVoted(f"voter already voted in election {election.id}")


def _check_candidate(election, candidate_id):
    if not isinstance(candidate_id, int) or isinstance(candidate_id, bool) \
            or not 1 <= candidate_id <= election.candidate_count:
        raise InvalidCandidate(f"no candidate {candidate_id!r} in election {election.id}")


def effective_weight(voter) -> int:
    # unregistered voters in open elections count once
    return voter.weight if voter is not None and voter.weight > 0 else 1


def _apply(db, election, voter, identity, candidate_ids: List[int]) -> int:
    if voter is None:
        voter = Voter(election_id=election.id, identity=identity,
                      is_registered=False, has_voted=False, weight=0, choices=[])
        db.add(voter)
    weight = effective_weight(voter)
    candidates = {
        c.local_id: c for c in db.query(Candidate)
        .filter(Candidate.election_id == election.id, Candidate.local_id.in_(candidate_ids))
    }
    for cid in candidate_ids:
        candidates[cid].vote_count += weight
        election.total_votes += weight
    voter.has_voted = True
    # new list so the JSON column is flagged dirty
    voter.choices = list(voter.choices or []) + list(candidate_ids)
    db.flush()
    return weight


def cast_vote(db, election, identity, candidate_id: int, now: int) -> int:
    """Single-choice ballot. Returns the weight applied."""
    state_machine.require_voting_open(election, now)
    voter = _voter_row(db, election, identity)
    _check_eligible(election, voter)
    _check_candidate(election, candidate_id)
    weight = _apply(db, election, voter, identity, [candidate_id])
    logger.info("election %s: vote for candidate %s with weight %s",
                election.id, candidate_id, weight)
    return weight


def cast_multiple_votes(db, election, identity, candidate_ids, now: int) -> int:
    """Multiple-choice ballot; the voter's weight goes to every listed candidate."""
    state_machine.require_voting_open(election, now)
    if election.voting_type != VotingType.multiple_choice:
        raise WrongVotingType(f"election {election.id} is single choice")
    candidate_ids = list(candidate_ids)
    if len(candidate_ids) > election.max_votes_per_voter:
        raise TooManyChoices(
            f"{len(candidate_ids)} choices exceed the limit of {election.max_votes_per_voter}")
    if not candidate_ids:
        raise EmptyBallot("ballot lists no candidates")
    voter = _voter_row(db, election, identity)
    _check_eligible(election, voter)
    for i, cid in enumerate(candidate_ids):
        _check_candidate(election, cid)
        for other in candidate_ids[i + 1:]:
            if other == cid:
                raise DuplicateChoice(f"candidate {cid} listed more than once")
    weight = _apply(db, election, voter, identity, candidate_ids)
    logger.info("election %s: ballot for candidates %s with weight %s",
                election.id, candidate_ids, weight)
    return weight
