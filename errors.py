"""Rejections raised by the election core.

Every error is terminal for the call that raised it and leaves stored state
untouched. Subclasses are grouped by category so the transport can map a
whole category to one status code.
"""


class ElectionError(Exception):
    kind = "ElectionError"

    def __init__(self, message=None):
        super().__init__(message or self.kind)


class AuthorizationError(ElectionError):
    kind = "AuthorizationError"


class ExistenceError(ElectionError):
    kind = "ExistenceError"


class StateError(ElectionError):
    kind = "StateError"


class ValidationError(ElectionError):
    kind = "ValidationError"


class EligibilityError(ElectionError):
    kind = "EligibilityError"


class Unauthorized(AuthorizationError):
    kind = "Unauthorized"


class ElectionNotFound(ExistenceError):
    kind = "ElectionNotFound"


class InvalidCandidate(ExistenceError):
    kind = "InvalidCandidate"


class NotReady(StateError):
    kind = "NotReady"


class ScheduleExpired(StateError):
    kind = "ScheduleExpired"


class ElectionNotActive(StateError):
    kind = "ElectionNotActive"


class ElectionAlreadyStarted(StateError):
    kind = "ElectionAlreadyStarted"


class InvalidTransition(StateError):
    kind = "InvalidTransition"


class InvalidSchedule(ValidationError):
    kind = "InvalidSchedule"


class InvalidWeight(ValidationError):
    kind = "InvalidWeight"


class TooManyChoices(ValidationError):
    kind = "TooManyChoices"


class InvalidMaxVotes(ValidationError):
    kind = "InvalidMaxVotes"


class EmptyBallot(ValidationError):
    kind = "EmptyBallot"


class DuplicateChoice(ValidationError):
    kind = "DuplicateChoice"


class WrongVotingType(ValidationError):
    kind = "WrongVotingType"


class VoterNotRegistered(EligibilityError):
    kind = "VoterNotRegistered"


class AlreadyVoted(EligibilityError):
    kind = "AlreadyVoted"


class AlreadyRegistered(EligibilityError):
    kind = "AlreadyRegistered"


class NotRegistered(EligibilityError):
    kind = "NotRegistered"
