"""Identity and conversation value objects carried inside envelopes."""

from __future__ import annotations

from pydantic import Field

from polaris_rest.models.base import PolarisBaseModel


class User(PolarisBaseModel):
    """Bot identity the gateway presents to the platform.

    Attributes:
        id: Stable user identifier, the ``bot`` field of broadcast and redirect
        first_name: Display first name
        last_name: Display last name, usually null for bots
        username: Handle used as the ``bot`` field of every other envelope
        is_bot: Always true for the gateway identity
    """

    id: str = Field(..., description="User identifier")
    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    username: str = Field(..., description="Username, used as envelope sender identity")
    is_bot: bool = Field(default=True, description="Whether the user is a bot")


def default_user() -> User:
    return User(id="rest", first_name="rest", last_name=None, username="restful", is_bot=True)


class Conversation(PolarisBaseModel):
    """Opaque chat identifier, built fresh for each envelope."""

    id: str = Field(..., description="Chat id as received from the caller")
