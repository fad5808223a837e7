"""
Credit ledger for quadratic voting.

Casting n votes on one option costs n**2 credits, whatever the sign of n.
Everything here is pure; the ballot machine and the server both recompute
spent and remaining credits from a full allocation with these helpers.
"""


def cost(count):
    return count * count


def total_spent(allocation):
    return sum(cost(count) for count in allocation)


def remaining(credits_per_voter, allocation):
    # Can go negative while validating an untrusted allocation.
    return credits_per_voter - total_spent(allocation)


def can_adjust(current, delta, credits_remaining):
    """
    Admission check for a single-unit change on one option.

    Moving a count towards zero always frees credits, so only the step away
    from zero is gated against the remaining budget.
    """
    if delta not in (1, -1):
        raise ValueError(f"delta must be +1 or -1, got {delta!r}")

    if current == 0 and credits_remaining == 0:
        return False

    step_cost = abs(cost(current) - cost(current + delta))
    if delta == 1:
        return True if current <= 0 else step_cost <= credits_remaining
    return True if current >= 0 else step_cost <= credits_remaining


def within_budget(credits_per_voter, allocation):
    """True when every entry is an int and the allocation fits the budget."""
    for count in allocation:
        # bool is an int subclass; a JSON true/false is not a vote count
        if isinstance(count, bool) or not isinstance(count, int):
            return False
    return remaining(credits_per_voter, allocation) >= 0
