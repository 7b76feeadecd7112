from enum import Enum


class Scope(str, Enum):
    """Capability scopes carried by bearer tokens.

    ``full`` – unrestricted account access (issued by signup/login/refresh).
    ``profile`` – read-only profile access (issued to federated OAuth clients).

    Strength is defined by :data:`_SCOPE_RANK`, never by declaration order.
    """

    full = "full"
    profile = "profile"


# Higher rank == stronger scope. A new level must get an explicit rank here.
_SCOPE_RANK: dict[Scope, int] = {
    Scope.profile: 10,
    Scope.full: 20,
}


def satisfies(held: Scope, required: Scope) -> bool:
    """Return ``True`` when ``held`` is at least as strong as ``required``."""
    return _SCOPE_RANK[held] >= _SCOPE_RANK[required]


def strongest_scope() -> Scope:
    return max(_SCOPE_RANK, key=_SCOPE_RANK.__getitem__)
