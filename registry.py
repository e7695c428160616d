# registry.py
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, List, Optional

from sqlalchemy.orm import sessionmaker

from models import Registry, Election, Candidate, Voter, ElectionState, VotingType
from errors import (ElectionError, ElectionNotFound, InvalidCandidate, InvalidSchedule,
                    ElectionAlreadyStarted, AlreadyRegistered, NotRegistered, AlreadyVoted,
                    InvalidWeight, InvalidMaxVotes, Unauthorized, WrongVotingType)
from db import session_scope
import access
import ballot
import state_machine

logger = logging.getLogger(__name__)


class ElectionRegistry:
    """Entry point for every election operation.

    Calls are serialized through one lock, and each runs inside a single
    database session that commits only if the call succeeds. Notifications
    are published after the commit, so a rejected call publishes nothing.
    """

    def __init__(self, session_factory: sessionmaker, ledger=None,
                 clock: Optional[Callable[[], int]] = None):
        self._session_factory = session_factory
        self._ledger = ledger
        self._clock = clock or (lambda: int(time.time()))
        self._listeners: List[Callable[[dict], None]] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: Callable[[dict], None]):
        self._listeners.append(listener)

    def now(self) -> int:
        return self._clock()

    @contextmanager
    def _call(self, operation: str):
        """Serialize, open a transaction and collect notifications for publishing."""
        with self._lock:
            events: List[dict] = []
            try:
                with session_scope(self._session_factory) as db:
                    yield db, events
            except ElectionError as e:
                logger.warning("%s rejected: %s (%s)", operation, e.kind, e)
                raise
            for ev in events:
                self._publish(ev)

    def _publish(self, event: dict):
        # the call already committed; a failing sink must not turn it into an error
        event.setdefault("timestamp", self.now())
        sinks = [self._ledger.record_event] if self._ledger is not None else []
        for sink in sinks + self._listeners:
            try:
                sink(event)
            except Exception:
                logger.exception("could not publish %s for election %s",
                                 event.get("event"), event.get("election_id"))

    @staticmethod
    def _registry_row(db) -> Registry:
        r = db.query(Registry).first()
        if r is None:
            raise RuntimeError("registry is not initialised; run init_db first")
        return r

    @staticmethod
    def _election(db, election_id) -> Election:
        e = db.get(Election, election_id) \
            if isinstance(election_id, int) and not isinstance(election_id, bool) else None
        if e is None:
            raise ElectionNotFound(f"no election {election_id!r}")
        return e

    @staticmethod
    def _voter(db, election, identity) -> Optional[Voter]:
        return db.query(Voter).filter_by(election_id=election.id, identity=identity).first()

    # ---- registry ----

    def create_election(self, caller, title, description, start_time, end_time,
                        voting_type=VotingType.single_choice, max_votes_per_voter=1,
                        requires_registration=False, results_visible=False) -> int:
        with self._call("create_election") as (db, events):
            try:
                voting_type = VotingType(voting_type)
            except ValueError:
                raise WrongVotingType(f"unknown voting type {voting_type!r}") from None
            now = self.now()
            if not start_time > now:
                raise InvalidSchedule("start time must be in the future")
            if not end_time > start_time:
                raise InvalidSchedule("end time must be after start time")
            if voting_type == VotingType.single_choice:
                max_votes_per_voter = 1
            elif max_votes_per_voter < 1:
                raise InvalidMaxVotes("max votes per voter must be at least 1")
            r = self._registry_row(db)
            r.election_count += 1
            e = Election(
                id=r.election_count,
                title=title,
                description=description,
                admin=caller,
                start_time=start_time,
                end_time=end_time,
                state=ElectionState.created,
                voting_type=voting_type,
                max_votes_per_voter=max_votes_per_voter,
                total_votes=0,
                candidate_count=0,
                requires_registration=bool(requires_registration),
                results_visible=bool(results_visible),
            )
            db.add(e)
            db.flush()
            election_id = e.id
            events.append({"event": "ElectionCreated", "election_id": election_id,
                           "title": title, "admin": caller})
        logger.info("election %s created by %s", election_id, caller)
        return election_id

    def get_election_count(self) -> int:
        with self._call("get_election_count") as (db, _):
            return self._registry_row(db).election_count

    def owner(self) -> str:
        with self._call("owner") as (db, _):
            return self._registry_row(db).owner

    # ---- candidate ledger ----

    def add_candidate(self, caller, election_id, name, description="") -> int:
        with self._call("add_candidate") as (db, events):
            e = self._election(db, election_id)
            access.require_admin(caller, e)
            if e.state != ElectionState.created:
                raise ElectionAlreadyStarted(f"election {e.id} is no longer accepting candidates")
            e.candidate_count += 1
            c = Candidate(election_id=e.id, local_id=e.candidate_count,
                          name=name, description=description, vote_count=0)
            db.add(c)
            candidate_id = c.local_id
            events.append({"event": "CandidateAdded", "election_id": e.id,
                           "candidate_id": candidate_id, "name": name})
        return candidate_id

    def get_candidate(self, election_id, candidate_id) -> dict:
        with self._call("get_candidate") as (db, _):
            e = self._election(db, election_id)
            if not isinstance(candidate_id, int) or isinstance(candidate_id, bool) \
                    or not 1 <= candidate_id <= e.candidate_count:
                raise InvalidCandidate(f"no candidate {candidate_id!r} in election {e.id}")
            c = db.query(Candidate).filter_by(election_id=e.id, local_id=candidate_id).one()
            return {
                "id": c.local_id,
                "name": c.name,
                "description": c.description,
                "vote_count": access.masked(e, c.vote_count),
            }

    # ---- voter roll ----

    def register_voter(self, caller, election_id, voter_identity, weight=1):
        with self._call("register_voter") as (db, events):
            e = self._election(db, election_id)
            access.require_admin(caller, e)
            if not isinstance(weight, int) or isinstance(weight, bool) or weight <= 0:
                raise InvalidWeight(f"weight must be a positive integer, got {weight!r}")
            v = self._voter(db, e, voter_identity)
            if v is not None and v.is_registered:
                raise AlreadyRegistered(f"{voter_identity} is already registered")
            if v is not None and v.has_voted:
                # a cast ballot fixes the weight
                raise AlreadyVoted(f"{voter_identity} already voted")
            if v is None:
                v = Voter(election_id=e.id, identity=voter_identity, has_voted=False, choices=[])
                db.add(v)
            v.is_registered = True
            v.weight = weight
            events.append({"event": "VoterRegistered", "election_id": e.id,
                           "voter": voter_identity, "weight": weight})

    def remove_voter(self, caller, election_id, voter_identity):
        with self._call("remove_voter") as (db, events):
            e = self._election(db, election_id)
            access.require_admin(caller, e)
            v = self._voter(db, e, voter_identity)
            if v is None or not v.is_registered:
                raise NotRegistered(f"{voter_identity} is not registered")
            if v.has_voted:
                raise AlreadyVoted(f"{voter_identity} already voted")
            v.is_registered = False
            events.append({"event": "VoterRemoved", "election_id": e.id, "voter": voter_identity})

    def get_voter_status(self, election_id, voter_identity) -> dict:
        with self._call("get_voter_status") as (db, _):
            e = self._election(db, election_id)
            v = self._voter(db, e, voter_identity)
            if v is None:
                return {"is_registered": False, "has_voted": False, "weight": 0}
            return {"is_registered": v.is_registered, "has_voted": v.has_voted, "weight": v.weight}

    def get_voter_choices(self, caller, election_id, voter_identity) -> List[int]:
        with self._call("get_voter_choices") as (db, _):
            e = self._election(db, election_id)
            if not access.can_read_choices(caller, e, voter_identity, self._registry_row(db).owner):
                raise Unauthorized("only the voter, the election admin or the owner may read choices")
            v = self._voter(db, e, voter_identity)
            return list(v.choices or []) if v is not None else []

    # ---- state machine ----

    def _transition(self, action, caller, election_id):
        with self._call(f"{action}_election") as (db, events):
            e = self._election(db, election_id)
            access.require_admin(caller, e)
            previous = e.state
            state_machine.ACTIONS[action](e, self.now())
            events.append({"event": "ElectionStateChanged", "election_id": e.id,
                           "state": e.state.value})
            new_state = e.state
        logger.info("election %s: %s -> %s", election_id, previous.value, new_state.value)
        return new_state

    def start_election(self, caller, election_id):
        return self._transition("start", caller, election_id)

    def pause_election(self, caller, election_id):
        return self._transition("pause", caller, election_id)

    def resume_election(self, caller, election_id):
        return self._transition("resume", caller, election_id)

    def end_election(self, caller, election_id):
        return self._transition("end", caller, election_id)

    def cancel_election(self, caller, election_id):
        return self._transition("cancel", caller, election_id)

    # ---- ballots ----

    def cast_vote(self, caller, election_id, candidate_id):
        with self._call("cast_vote") as (db, events):
            e = self._election(db, election_id)
            weight = ballot.cast_vote(db, e, caller, candidate_id, self.now())
            events.append({"event": "VoteCast", "election_id": e.id, "voter": caller,
                           "candidate_id": candidate_id, "weight": weight})

    def cast_multiple_votes(self, caller, election_id, candidate_ids):
        with self._call("cast_multiple_votes") as (db, events):
            e = self._election(db, election_id)
            candidate_ids = list(candidate_ids)
            weight = ballot.cast_multiple_votes(db, e, caller, candidate_ids, self.now())
            for cid in candidate_ids:
                events.append({"event": "VoteCast", "election_id": e.id, "voter": caller,
                               "candidate_id": cid, "weight": weight})

    # ---- reads ----

    def get_election_info(self, election_id) -> dict:
        with self._call("get_election_info") as (db, _):
            e = self._election(db, election_id)
            return {
                "id": e.id,
                "title": e.title,
                "description": e.description,
                "admin": e.admin,
                "start_time": e.start_time,
                "end_time": e.end_time,
                "state": e.state.value,
                "voting_type": e.voting_type.value,
                "max_votes_per_voter": e.max_votes_per_voter,
                "total_votes": access.masked(e, e.total_votes),
                "candidate_count": e.candidate_count,
                "requires_registration": e.requires_registration,
                "results_visible": e.results_visible,
            }
