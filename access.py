# access.py
from models import ElectionState
from errors import Unauthorized


def is_owner(caller, owner) -> bool:
    return caller is not None and caller == owner


def is_admin(caller, election) -> bool:
    return caller is not None and caller == election.admin


def require_admin(caller, election):
    if not is_admin(caller, election):
        raise Unauthorized(f"caller is not the admin of election {election.id}")


def results_disclosed(election) -> bool:
    """Tallies are readable once the admin opened them or the election ended."""
    return bool(election.results_visible) or election.state == ElectionState.ended


def masked(election, value: int) -> int:
    return value if results_disclosed(election) else 0


def can_read_choices(caller, election, voter_identity, owner) -> bool:
    return caller is not None and (
        caller == voter_identity or is_admin(caller, election) or is_owner(caller, owner)
    )
