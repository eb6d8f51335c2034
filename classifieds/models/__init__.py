from classifieds.models.base import Base  # noqa: F401

from classifieds.models.account import Account  # noqa: F401
from classifieds.models.access_token import AccessToken  # noqa: F401
from classifieds.models.profile import UserProfileRow  # noqa: F401
from classifieds.models.listing import Listing  # noqa: F401
