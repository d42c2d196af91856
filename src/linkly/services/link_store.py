"""In-memory link store with an alias lookup cache."""

import secrets
import string
import threading
import uuid
from datetime import datetime
from typing import Callable

import structlog

from linkly.core.clock import Clock, utc_now
from linkly.core.exceptions import CapacityError, ConflictError, NotFoundError, ValidationError
from linkly.schemas.link import Link

logger = structlog.get_logger()

# Characters for random alias generation (base62)
ALIAS_CHARS = string.ascii_lowercase + string.ascii_uppercase + string.digits
ALIAS_LENGTH = 6
ALIAS_MAX_ATTEMPTS = 10
DEFAULT_OWNER = "user_1"


def generate_alias(length: int = ALIAS_LENGTH) -> str:
    """Generate a random alias using base62 characters."""
    return "".join(secrets.choice(ALIAS_CHARS) for _ in range(length))


class LinkStore:
    """Canonical set of links plus a derived alias -> link cache.

    Both maps are only ever changed together under one lock, so a
    reader never sees an alias without its link or the other way round.

    Usage:
        store = LinkStore()
        link = store.create("https://example.com/some/long/path")
        store.resolve(link.alias)  # -> Link
        store.delete(link.id)
        store.resolve(link.alias)  # -> None
    """

    def __init__(
        self,
        alias_length: int = ALIAS_LENGTH,
        alias_max_attempts: int = ALIAS_MAX_ATTEMPTS,
        default_owner: str = DEFAULT_OWNER,
        clock: Clock = utc_now,
        alias_factory: Callable[[int], str] = generate_alias,
    ):
        """Initialize the store.

        Args:
            alias_length: Length of generated aliases.
            alias_max_attempts: Candidates to try before giving up on generation.
            default_owner: Owner recorded when the caller names none.
            clock: Source of the current UTC time.
            alias_factory: Produces a random alias of the given length.
        """
        self._alias_length = alias_length
        self._alias_max_attempts = alias_max_attempts
        self._default_owner = default_owner
        self._clock = clock
        self._alias_factory = alias_factory
        self._links: dict[str, Link] = {}
        self._cache: dict[str, Link] = {}
        self._lock = threading.Lock()

    def _put(self, link: Link) -> None:
        # Callers hold the lock
        self._links[link.id] = link
        self._cache[link.alias] = link

    def _generate_unique_alias(self) -> str:
        for _ in range(self._alias_max_attempts):
            candidate = self._alias_factory(self._alias_length)
            if candidate not in self._cache:
                return candidate
        logger.error(
            "Alias generation exhausted",
            attempts=self._alias_max_attempts,
            alias_length=self._alias_length,
        )
        raise CapacityError("Unable to generate a unique alias")

    def list_all(self) -> list[Link]:
        """All links, newest first."""
        with self._lock:
            # Reversed insertion order keeps the newest first among equal timestamps
            links = list(reversed(self._links.values()))
        return sorted(links, key=lambda link: link.created_at, reverse=True)

    def create(
        self,
        original_url: str,
        alias: str | None = None,
        expires_at: datetime | None = None,
        owner: str | None = None,
    ) -> Link:
        """Create a new link.

        A caller supplied alias is used verbatim; otherwise a random one
        is generated.

        Raises:
            ValidationError: ``original_url`` is empty.
            ConflictError: The alias belongs to an existing link.
            CapacityError: No free alias was found.
        """
        if not original_url or not original_url.strip():
            raise ValidationError("URL is required")

        with self._lock:
            if alias:
                if alias in self._cache:
                    raise ConflictError(alias)
            else:
                alias = self._generate_unique_alias()

            link = Link(
                id=uuid.uuid4().hex,
                original_url=original_url,
                alias=alias,
                created_at=self._clock(),
                expires_at=expires_at,
                active=True,
                owner=owner or self._default_owner,
            )
            self._put(link)

        logger.info("Link created", link_id=link.id, alias=link.alias, owner=link.owner)
        return link

    def add(self, link: Link) -> Link:
        """Insert an already built link, e.g. demo data.

        Raises:
            ConflictError: The id or alias is already taken.
        """
        with self._lock:
            if link.alias in self._cache:
                raise ConflictError(link.alias)
            if link.id in self._links:
                raise ConflictError(link.alias, f"Link id '{link.id}' already exists")
            self._put(link)
        return link

    def delete(self, link_id: str) -> bool:
        """Remove a link.

        Deleting an unknown id is not an error.

        Returns:
            True if a link was removed.
        """
        with self._lock:
            link = self._links.pop(link_id, None)
            if link is None:
                return False
            del self._cache[link.alias]

        logger.info("Link deleted", link_id=link_id, alias=link.alias)
        return True

    def set_active(self, link_id: str, active: bool) -> Link:
        """Enable or disable a link without deleting it.

        Raises:
            NotFoundError: No link has that id.
        """
        with self._lock:
            link = self._links.get(link_id)
            if link is None:
                raise NotFoundError("Link not found")
            link = link.model_copy(update={"active": active})
            self._put(link)

        logger.info("Link updated", link_id=link_id, active=active)
        return link

    def get(self, link_id: str) -> Link | None:
        """Get a link by id, whatever its state."""
        with self._lock:
            return self._links.get(link_id)

    def get_by_alias(self, alias: str) -> Link | None:
        """Get a link by alias without activity or expiry checks."""
        with self._lock:
            return self._cache.get(alias)

    def resolve(self, alias: str) -> Link | None:
        """Get the active, non-expired link for an alias.

        Returns None when no link has the alias, the link is disabled,
        or its expiry time has passed.
        """
        with self._lock:
            link = self._cache.get(alias)

        if link is None:
            logger.debug("Alias not found", alias=alias)
            return None
        if not link.active:
            logger.debug("Alias inactive", alias=alias)
            return None
        if link.is_expired(self._clock()):
            logger.debug("Alias expired", alias=alias)
            return None
        return link

    def __len__(self) -> int:
        return len(self._links)

    def __contains__(self, link_id: object) -> bool:
        return link_id in self._links
