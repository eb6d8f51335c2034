import pytest

from classifieds.adapters.base import UserProfile
from classifieds.core.errors import AuthenticationError, NotFoundError
from classifieds.services.profiles import ProfileService

from fakes import FakeIdentity


@pytest.fixture
def service(fake_backends):
    return ProfileService(fake_backends)


async def test_first_read_creates_profile_from_identity(service, fake_backends):
    profile = await service.get_profile("tok-u1")

    assert profile == UserProfile(id="u1", email="u1@example.com")
    assert fake_backends.profiles.profiles["u1"] == profile


async def test_existing_profile_is_returned_as_is(service, fake_backends):
    fake_backends.profiles.profiles["u1"] = UserProfile(id="u1", email="old@example.com", name="Ann")

    profile = await service.get_profile("tok-u1")

    assert profile.email == "old@example.com"
    assert profile.name == "Ann"


async def test_update_merges_only_submitted_fields(service, fake_backends):
    fake_backends.profiles.profiles["u1"] = UserProfile(
        id="u1", email="u1@example.com", name="Ann", location="Springfield", phone_number="555-0100"
    )

    profile = await service.update_profile("tok-u1", {"location": "Shelbyville"})

    assert profile.name == "Ann"
    assert profile.phone_number == "555-0100"
    assert profile.location == "Shelbyville"


async def test_update_ignores_email_and_unknown_keys(service, fake_backends):
    fake_backends.identity.emails["u1"] = "real@example.com"

    profile = await service.update_profile("tok-u1", {"email": "spoofed@example.com", "id": "u2", "name": "Ann"})

    assert profile.id == "u1"
    assert profile.email == "real@example.com"
    assert profile.name == "Ann"
    assert "u2" not in fake_backends.profiles.profiles


async def test_profile_requires_credential(service):
    with pytest.raises(AuthenticationError):
        await service.get_profile(None)


async def test_profile_for_unknown_account(fake_backends):
    class NoAccounts(FakeIdentity):
        async def lookup(self, uid):
            return None

    fake_backends.identity = NoAccounts(tokens={"tok-u1": "u1"})
    with pytest.raises(NotFoundError):
        await ProfileService(fake_backends).get_profile("tok-u1")
