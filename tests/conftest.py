import sys
import os

import pytest
from sqlalchemy.orm import sessionmaker

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import db
import registry as registry_mod
from blockchain import Blockchain
from models import VotingType

OWNER = 'owner'
ADMIN = 'admin'
T0 = 1_000_000


class Clock:
    def __init__(self, t=T0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds

    def set(self, t):
        self.t = t


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def session_factory():
    engine = db.make_engine('sqlite://')
    db.init_db(owner=OWNER, bind=engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def events():
    return []


@pytest.fixture
def registry(session_factory, clock, events):
    reg = registry_mod.ElectionRegistry(session_factory, clock=clock)
    reg.subscribe(events.append)
    return reg


@pytest.fixture
def ledger(tmp_path):
    return Blockchain(chain_file=tmp_path / 'chain.json', difficulty=1)


@pytest.fixture
def new_election(registry, clock):
    """Create an election starting 100s from now and lasting 1000s."""
    def _create(candidates=2, voting_type=VotingType.single_choice, max_votes=1,
                requires_registration=False, results_visible=False, admin=ADMIN):
        eid = registry.create_election(
            admin, 'Board', 'Annual board election',
            clock() + 100, clock() + 1100,
            voting_type, max_votes, requires_registration, results_visible,
        )
        for i in range(candidates):
            registry.add_candidate(admin, eid, f'cand-{i + 1}', f'candidate {i + 1}')
        return eid
    return _create


@pytest.fixture
def active_election(registry, clock, new_election):
    """Create an election and move time and state so it accepts votes."""
    def _create(**kwargs):
        eid = new_election(**kwargs)
        clock.set(registry.get_election_info(eid)['start_time'])
        registry.start_election(kwargs.get('admin', ADMIN), eid)
        return eid
    return _create


def candidate_sum(session_factory, election_id):
    from models import Candidate
    session = session_factory()
    try:
        return sum(c.vote_count for c in session.query(Candidate).filter_by(election_id=election_id))
    finally:
        session.close()


def stored_total(session_factory, election_id):
    from models import Election
    session = session_factory()
    try:
        return session.get(Election, election_id).total_votes
    finally:
        session.close()
