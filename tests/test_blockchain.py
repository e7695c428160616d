import sys
import os
import json

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import errors
import registry as registry_mod
from blockchain import Blockchain, LedgerCorrupted
from conftest import ADMIN


def test_genesis_created(ledger):
    assert len(ledger.chain) == 1
    assert ledger.chain[0].index == 0
    assert ledger.is_valid_chain()


def test_record_event_mines_block(ledger):
    idx = ledger.record_event({'event': 'X', 'election_id': 1})
    assert idx == 1
    assert ledger.last_block.hash.startswith('0')
    assert ledger.last_block.previous_hash == ledger.chain[0].hash
    assert ledger.find_events(1) == [{'event': 'X', 'election_id': 1}]
    assert ledger.find_events(2) == []


def test_chain_survives_reload(tmp_path):
    path = tmp_path / 'chain.json'
    first = Blockchain(chain_file=path, difficulty=1)
    first.record_event({'event': 'A', 'election_id': 1})
    first.record_event({'event': 'B', 'election_id': 2})
    second = Blockchain(chain_file=path, difficulty=1)
    assert [b.hash for b in second.chain] == [b.hash for b in first.chain]
    assert second.find_events(2) == [{'event': 'B', 'election_id': 2}]


def test_tampering_detected_on_load(tmp_path):
    path = tmp_path / 'chain.json'
    ledger = Blockchain(chain_file=path, difficulty=1)
    ledger.record_event({'event': 'VoteCast', 'election_id': 1, 'weight': 1})
    data = json.loads(path.read_text())
    data[1]['transactions'][0]['weight'] = 100
    path.write_text(json.dumps(data))
    with pytest.raises(LedgerCorrupted):
        Blockchain(chain_file=path, difficulty=1)


def test_creates_missing_directory(tmp_path):
    path = tmp_path / 'nested' / 'dir' / 'chain.json'
    Blockchain(chain_file=path, difficulty=1)
    assert path.exists()


def test_registry_publishes_to_ledger(session_factory, clock, ledger):
    reg = registry_mod.ElectionRegistry(session_factory, ledger=ledger, clock=clock)
    eid = reg.create_election(ADMIN, 'Board', '', clock() + 1, clock() + 100)
    reg.add_candidate(ADMIN, eid, 'a')
    reg.add_candidate(ADMIN, eid, 'b')
    reg.register_voter(ADMIN, eid, 'alice', 2)
    with pytest.raises(errors.Unauthorized):
        reg.add_candidate('mallory', eid, 'c')
    clock.advance(1)
    reg.start_election(ADMIN, eid)
    reg.cast_vote('alice', eid, 2)
    names = [e['event'] for e in ledger.find_events(eid)]
    assert names == ['ElectionCreated', 'CandidateAdded', 'CandidateAdded',
                     'VoterRegistered', 'ElectionStateChanged', 'VoteCast']
    assert ledger.is_valid_chain()


def test_failed_write_keeps_previous_chain(tmp_path, monkeypatch):
    path = tmp_path / 'chain.json'
    ledger = Blockchain(chain_file=path, difficulty=1)
    ledger.record_event({'event': 'A', 'election_id': 1})
    before = path.read_text()

    def crash(*args, **kwargs):
        raise OSError('disk full')

    monkeypatch.setattr(json, 'dump', crash)
    with pytest.raises(OSError):
        ledger.record_event({'event': 'B', 'election_id': 1})
    monkeypatch.undo()
    assert path.read_text() == before
    reloaded = Blockchain(chain_file=path, difficulty=1)
    assert reloaded.find_events(1) == [{'event': 'A', 'election_id': 1}]


def test_write_leaves_no_temp_file(tmp_path):
    path = tmp_path / 'chain.json'
    Blockchain(chain_file=path, difficulty=1).record_event({'event': 'A', 'election_id': 1})
    assert sorted(p.name for p in tmp_path.iterdir()) == ['chain.json']
