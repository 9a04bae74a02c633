"""
Name resolution against the chat platform's directory.

Bots address users, channels and private groups by their human-readable
names. The Directory protocol turns those names into ids. ListingDirectory
implements it the simple way: list everything through the platform's
listing endpoints, then filter by name. Every listing call is admitted
through the shared RateLimitedQueue.

Example:
    >>> directory = ListingDirectory(api, queue)
    >>> user_id = await directory.resolve_user_id("alice")
    >>> channel_id = await directory.resolve_direct_message_channel_id(user_id)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict, TypeAdapter

from chatprobe.exceptions import DirectoryLookupError
from chatprobe.ratelimit import RateLimitedQueue

logger = logging.getLogger(__name__)


class DirectoryRecord(BaseModel):
    """Base for records returned by listing endpoints. Unknown fields are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str


class Member(DirectoryRecord):
    """A workspace member."""

    name: str


class Channel(DirectoryRecord):
    """A public channel."""

    name: str


class Group(DirectoryRecord):
    """A private channel."""

    name: str


class DirectChannel(DirectoryRecord):
    """A direct-message channel between the bot and one user."""

    user: str


RecordT = TypeVar("RecordT", bound=DirectoryRecord)

RawRecords = Sequence[Mapping[str, Any]]


@runtime_checkable
class Directory(Protocol):
    """Protocol for resolving names to platform ids."""

    async def resolve_user_id(self, name: str) -> str: ...

    async def resolve_channel_id(self, name: str) -> str: ...

    async def resolve_group_id(self, name: str) -> str: ...

    async def resolve_direct_message_channel_id(self, user_id: str) -> str: ...


@runtime_checkable
class DirectoryApi(Protocol):
    """
    Protocol for the platform's listing endpoints.

    Each method returns raw records as the platform sends them.
    """

    async def list_members(self) -> RawRecords: ...

    async def list_channels(self) -> RawRecords: ...

    async def list_groups(self) -> RawRecords: ...

    async def list_direct_channels(self) -> RawRecords: ...


class ListingDirectory:
    """
    Directory that resolves names by filtering full listings.

    No caching: every lookup issues one rate-limited listing call, so a
    channel created during a test run is found on the next lookup.
    """

    def __init__(self, api: DirectoryApi, queue: RateLimitedQueue) -> None:
        self._api = api
        self._queue = queue

    async def _find(
        self,
        listing: Callable[[], Awaitable[RawRecords]],
        model: type[RecordT],
        predicate: Callable[[RecordT], bool],
        kind: str,
        name: str,
    ) -> str:
        raw = await self._queue.enqueue(listing)
        records = TypeAdapter(list[model]).validate_python(list(raw))  # type: ignore[valid-type]
        found = [record for record in records if predicate(record)]
        if not found:
            raise DirectoryLookupError(kind, name)

        logger.debug(
            f"Resolved {kind} {name} to {found[0].id}",
            extra={"kind": kind, "name": name, "id": found[0].id, "candidates": len(records)},
        )
        return found[0].id

    async def resolve_user_id(self, name: str) -> str:
        """Resolve a username to a user id."""
        return await self._find(
            self._api.list_members,
            Member,
            lambda member: member.name == name,
            "member with username",
            name,
        )

    async def resolve_channel_id(self, name: str) -> str:
        """Resolve a public channel name to its id."""
        return await self._find(
            self._api.list_channels,
            Channel,
            lambda channel: channel.name == name,
            "channel named",
            name,
        )

    async def resolve_group_id(self, name: str) -> str:
        """Resolve a private group name to its id."""
        return await self._find(
            self._api.list_groups,
            Group,
            lambda group: group.name == name,
            "group",
            name,
        )

    async def resolve_direct_message_channel_id(self, user_id: str) -> str:
        """Find the direct-message channel the bot shares with a user."""
        return await self._find(
            self._api.list_direct_channels,
            DirectChannel,
            lambda channel: channel.user == user_id,
            "im channel for user",
            user_id,
        )


__all__ = [
    "Directory",
    "DirectoryApi",
    "ListingDirectory",
    "DirectoryRecord",
    "Member",
    "Channel",
    "Group",
    "DirectChannel",
]
