"""
Crazy prediction validation

Peers vote on whether a crazy prediction is a legitimate guess; admins
separately mark whether it happened. Both gates must pass before the
engine awards the crazy point.

The vote policy is "no explicit reject means accepted":

    admin override set   -> the override decides
    no votes             -> UNVALIDATED (counts as accepted)
    any reject           -> REJECTED
    only accepts         -> ACCEPTED

It is evaluated at scoring time, never when a vote is cast, so changing a
vote and rescoring is enough to move a prediction between states.
"""

import enum
from collections import namedtuple

Vote = namedtuple("Vote", ["validator_id", "accepted"])


class ValidationState(str, enum.Enum):
    UNVALIDATED = "unvalidated"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def counts_as_accepted(self):
        return self is not ValidationState.REJECTED


def validation_state(votes, admin_override=None):
    """Peer validation state for one crazy prediction

    Args:
        votes: iterable of Vote (or anything with an ``accepted`` attribute)
        admin_override: True/False to force the state, None to use the votes
    """
    if admin_override is not None:
        return ValidationState.ACCEPTED if admin_override else ValidationState.REJECTED

    votes = list(votes)
    if not votes:
        return ValidationState.UNVALIDATED

    if any(not vote.accepted for vote in votes):
        return ValidationState.REJECTED

    return ValidationState.ACCEPTED


def crazy_point_verdict(state, happened):
    """Combine the two gates: ACCEPTED only if validated and happened

    ``state`` is the peer validation state, None meaning no votes yet.
    """
    if state is None:
        state = ValidationState.UNVALIDATED
    if state.counts_as_accepted and happened:
        return ValidationState.ACCEPTED
    return ValidationState.REJECTED


def resolve_crazy_prediction_state(votes, happened, admin_override=None):
    """Final verdict for the crazy point from the raw votes"""
    return crazy_point_verdict(validation_state(votes, admin_override=admin_override), happened)
