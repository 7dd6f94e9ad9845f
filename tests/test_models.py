import pytest
from pydantic import ValidationError

from conftest import NOW_MS, NOW_S
from core.domain.descriptor import RequestDescriptor
from core.domain.models import CreateReviewRequest, OperatingHours, Photo, Session


def test_half_filled_day_resolves_to_closed() -> None:
    hours = OperatingHours.model_validate(
        {
            "monday": {"openTime": "09:00", "closeTime": "17:00"},
            "tuesday": {"openTime": "09:00"},
            "wednesday": {"openTime": "", "closeTime": "17:00"},
        }
    )

    assert hours.monday is not None and hours.monday.close_time == "17:00"
    assert hours.tuesday is None
    assert hours.wednesday is None
    assert list(hours.open_days()) == ["monday"]


def test_operating_hours_serialize_closed_days_as_null() -> None:
    wire = OperatingHours.model_validate({"sunday": {"openTime": "10:00", "closeTime": "14:00"}}).model_dump(
        by_alias=True
    )

    assert wire["sunday"] == {"openTime": "10:00", "closeTime": "14:00"}
    assert wire["monday"] is None


@pytest.mark.parametrize(
    "payload, key",
    [
        ({"url": "http://api/photos/a.jpg", "id": "id-1"}, "id-1"),
        ({"url": "http://api/photos/a.jpg", "filename": "file.jpg"}, "file.jpg"),
        ({"url": "http://api/photos/a.jpg"}, "a.jpg"),
        ({"url": "b.png"}, "b.png"),
    ],
)
def test_photo_retrieval_key(payload: dict, key: str) -> None:
    assert Photo.model_validate(payload).retrieval_key == key


def test_session_expiry_margin() -> None:
    assert Session(expires_at=NOW_S + 59, is_authenticated=True).is_expiring_soon(now_ms=NOW_MS)
    assert not Session(expires_at=NOW_S + 61, is_authenticated=True).is_expiring_soon(now_ms=NOW_MS)
    assert not Session(is_authenticated=True).is_expiring_soon(now_ms=NOW_MS)


def test_session_is_immutable() -> None:
    session = Session(access_token="a", is_authenticated=True)

    with pytest.raises(ValidationError):
        session.access_token = "b"  # type: ignore[misc]


def test_review_rating_bounds() -> None:
    with pytest.raises(ValidationError):
        CreateReviewRequest(content="meh", rating=0)
    with pytest.raises(ValidationError):
        CreateReviewRequest(content="wow", rating=6)


def test_descriptor_copies_instead_of_mutating() -> None:
    original = RequestDescriptor("get", "/restaurants", params={"q": "x", "minRating": None})

    authorized = original.with_authorization("tok")

    assert original.method == "GET"
    assert dict(original.params) == {"q": "x"}
    assert original.authorization is None
    assert authorized.authorization == "Bearer tok"
    assert authorized.path == original.path


def test_descriptor_is_frozen() -> None:
    descriptor = RequestDescriptor("GET", "/restaurants", headers={"Accept": "application/json"})

    with pytest.raises(TypeError):
        descriptor.headers["Authorization"] = "Bearer x"  # type: ignore[index]
