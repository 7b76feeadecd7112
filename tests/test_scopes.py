import pytest

from sidestore_id.models import NIL_USER_ID, Principal
from sidestore_id.models.scopes import Scope, satisfies, strongest_scope


@pytest.mark.parametrize(
    "held, required, expected",
    [
        (Scope.full, Scope.full, True),
        (Scope.full, Scope.profile, True),
        (Scope.profile, Scope.profile, True),
        (Scope.profile, Scope.full, False),
    ],
)
def test_satisfies_follows_rank(held, required, expected):
    assert satisfies(held, required) is expected


def test_strongest_scope_is_full():
    assert strongest_scope() is Scope.full


def test_scope_values_are_wire_strings():
    assert Scope("full") is Scope.full
    assert Scope("profile") is Scope.profile
    with pytest.raises(ValueError):
        Scope("admin")


def test_principal_helpers():
    anonymous = Principal(user_id=NIL_USER_ID, scope=Scope.profile)
    assert anonymous.is_anonymous
    assert anonymous.has_scope(Scope.profile)
    assert not anonymous.has_scope(Scope.full)

    user = Principal(user_id="8f7c1c1e-0000-4000-8000-000000000001", scope=Scope.full)
    assert not user.is_anonymous
    assert user.has_scope(Scope.profile)
