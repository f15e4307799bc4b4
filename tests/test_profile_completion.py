from types import SimpleNamespace

from app.models.user import User
from app.schemas.user import ProfileResponse
from app.services.profile_completion import (
    MANDATORY_FIELDS,
    is_profile_complete,
    missing_profile_fields,
    profile_completion_details,
    profile_completion_percentage,
)


def _complete(**overrides):
    identity = {
        "name": "Meena",
        "batch_year": 1999,
        "state": "Kerala",
        "district": "Wayanad",
        "has_password": True,
    }
    identity.update(overrides)
    return identity


def test_complete_identity():
    identity = _complete()

    assert is_profile_complete(identity) is True
    assert missing_profile_fields(identity) == []
    assert profile_completion_percentage(identity) == 100


def test_missing_district_only():
    identity = _complete(district=None)

    assert is_profile_complete(identity) is False
    assert missing_profile_fields(identity) == ["JNV District"]
    assert profile_completion_percentage(identity) == 80


def test_blank_strings_and_zero_year_count_as_missing():
    identity = _complete(name="   ", batch_year=0)

    assert missing_profile_fields(identity) == ["Full Name", "JNV Batch Year"]
    assert profile_completion_percentage(identity) == 60


def test_no_identity():
    assert is_profile_complete(None) is False
    assert missing_profile_fields(None) == ["All profile information"]
    assert profile_completion_percentage(None) == 0


def test_missing_fields_follow_declared_order():
    labels = [field.label for field in MANDATORY_FIELDS]

    assert missing_profile_fields({}) == labels
    assert profile_completion_percentage({}) == 0


def test_orm_user_uses_password_hash():
    user = User(name="Meena", batch_year=1999, state="Kerala", district="Wayanad", password_hash="$2b$12$abc")

    assert is_profile_complete(user) is True


def test_wire_identity_uses_has_password_flag():
    with_password = ProfileResponse(id=1, **_complete())
    without_password = ProfileResponse(id=2, **_complete(has_password=False))

    assert is_profile_complete(with_password) is True
    assert missing_profile_fields(without_password) == ["Password"]


def test_plain_objects_are_supported():
    identity = SimpleNamespace(name="Meena", batch_year=1999, state=None, district="Wayanad", password="pw")

    assert missing_profile_fields(identity) == ["JNV State"]


def test_details_are_consistent():
    details = profile_completion_details(_complete(state=""))

    assert details["is_complete"] is False
    assert details["missing_fields"] == ["JNV State"]
    assert details["completion_percentage"] == 80
    assert details["details"] == {
        "name": True,
        "batch_year": True,
        "state": False,
        "district": True,
        "password": True,
    }
