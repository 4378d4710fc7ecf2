"""
Container cache layout in Redis.

- ``containers:index``: sorted set, members ``"{CODE}:{id}"`` (code upper-cased,
  empty when missing), score 0.
- ``containers:data:{id}``: the record as camelCase JSON, no expiry.
"""

import logging
from collections.abc import Iterable, Iterator
from typing import Any

import redis

from app.schemas_query import ContainerRecord

logger = logging.getLogger(__name__)

INDEX_KEY = "containers:index"
DATA_KEY_PREFIX = "containers:data:"


def data_key(container_id: int) -> str:
    return f"{DATA_KEY_PREFIX}{container_id}"


def index_member(record: ContainerRecord) -> str:
    return f"{(record.code or '').upper()}:{record.id}"


def member_id(member: str) -> int | None:
    """Numeric suffix after the last ``:``; None when it does not parse."""
    _, sep, tail = member.rpartition(":")
    if not sep:
        return None
    try:
        return int(tail)
    except ValueError:
        return None


class ContainerCache:
    """Index + blob operations over a Redis client (decode_responses=True)."""

    def __init__(self, client: redis.Redis, *, scan_page_size: int = 1000) -> None:
        self.client = client
        self.scan_page_size = scan_page_size

    def scan_index(self) -> Iterator[str]:
        """Every member of the index, paged with ZSCAN."""
        for member, _score in self.client.zscan_iter(INDEX_KEY, count=self.scan_page_size):
            yield member

    def cached_members(self) -> dict[int, set[str]]:
        """Index members grouped by their id suffix; malformed members are skipped."""
        members: dict[int, set[str]] = {}
        for member in self.scan_index():
            cid = member_id(member)
            if cid is not None:
                members.setdefault(cid, set()).add(member)
            else:
                logger.debug("Ignoring malformed index member %r", member)
        return members

    def put(self, record: ContainerRecord) -> None:
        """Write the blob then the index member (two separate commands)."""
        self.client.set(data_key(record.id), record.model_dump_json(by_alias=True))
        self.client.zadd(INDEX_KEY, {index_member(record): 0})

    def delete_data(self, ids: Iterable[int]) -> int:
        keys = [data_key(i) for i in ids]
        if not keys:
            return 0
        return int(self.client.delete(*keys))

    def remove_members(self, ids: set[int]) -> int:
        """Rescan the index and drop every member whose id is in *ids*."""
        if not ids:
            return 0
        return self.drop_members([m for m in self.scan_index() if member_id(m) in ids])

    def drop_members(self, members: Iterable[str]) -> int:
        doomed = list(members)
        if not doomed:
            return 0
        return int(self.client.zrem(INDEX_KEY, *doomed))

    def get(self, container_id: int) -> dict[str, Any] | None:
        raw = self.client.get(data_key(container_id))
        if raw is None:
            return None
        return ContainerRecord.model_validate_json(raw).model_dump(by_alias=True)

    def find_by_code(self, code: str) -> list[int]:
        """Ids whose index member starts with ``CODE:`` (exact code match)."""
        prefix = f"{code.upper()}:"
        ids: list[int] = []
        matches = self.client.zscan_iter(
            INDEX_KEY, match=f"{_escape_glob(prefix)}*", count=self.scan_page_size
        )
        for member, _score in matches:
            cid = member_id(member)
            if cid is not None and member[len(prefix):].isdigit():
                ids.append(cid)
        return sorted(ids)


def _escape_glob(text: str) -> str:
    return "".join("\\" + c if c in "*?[]\\" else c for c in text)
