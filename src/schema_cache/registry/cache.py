import logging
import threading
from collections.abc import Hashable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from schema_cache.codecs.base import Codec, CodecFactory
from schema_cache.core.exceptions import NotFoundError
from schema_cache.metrics import record_lookup
from schema_cache.registry.decoder import (
    encode_schema_request,
    parse_registered,
    parse_schema_by_id,
    parse_subject_version,
)
from schema_cache.registry.models import (
    Schema,
    SchemaReference,
    SchemaType,
    normalize_schema_text,
)
from schema_cache.registry.transport import Transport, quote_subject

logger = logging.getLogger(__name__)


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class KeyedLocks:
    """One lock per distinct key, created on demand and dropped when unused.

    Callers holding the lock for key A never block callers for key B.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, _KeyLock] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def _is_narrower(held: Schema, fetched: Schema) -> bool:
    """True when ``fetched`` discloses keys that ``held`` lacks."""
    return (held.subject is None and fetched.subject is not None) or (
        held.version is None and fetched.version is not None
    )


class SchemaCache:
    """In-memory index over schemas by id, by (subject, version) and by (subject, text).

    Thread-safe: index reads and writes are guarded by one short-lived lock,
    while remote fetches are serialized per cache key so that concurrent
    lookups for the same unseen key issue a single registry call. Entries are
    only added by successful fetches and only removed by invalidation.
    """

    def __init__(
        self,
        transport: Transport,
        codec_factory: CodecFactory | None = None,
        cache_responses: bool = True,
        cache_not_found: bool = False,
        latest_refresh: bool = True,
    ) -> None:
        self._transport = transport
        self._codec_factory = codec_factory or CodecFactory.default()
        self.cache_responses = cache_responses
        self.cache_not_found = cache_not_found
        self.latest_refresh = latest_refresh

        self._lock = threading.Lock()
        self._inflight = KeyedLocks()
        self._by_id: dict[int, Schema] = {}
        self._by_subject_version: dict[tuple[str, int], Schema] = {}
        self._by_subject_schema: dict[tuple[str, str], Schema] = {}
        self._latest: dict[str, Schema] = {}
        self._not_found: set[tuple[Hashable, ...]] = set()

    # -- lookups -----------------------------------------------------------

    def resolve_by_id(self, schema_id: int) -> Schema:
        """Schema for a registry id; subject and version are unknown unless already cached."""
        cached = self._cached("id", self._by_id, schema_id)
        if cached is not None:
            return cached

        key = ("id", schema_id)
        with self._inflight.hold(key):
            cached = self._peek(self._by_id, schema_id)
            if cached is not None:
                return cached
            self._raise_if_not_found(key)

            try:
                data = self._transport.request("GET", f"/schemas/ids/{schema_id}")
            except NotFoundError:
                self._remember_not_found(key)
                raise
            schema = parse_schema_by_id(data, schema_id)
            logger.info(f"Fetched schema {schema_id}", extra={"schema_id": schema_id})
            return self._store(schema)

    def resolve_latest(self, subject: str, refresh: bool | None = None) -> Schema:
        """Latest version registered under ``subject``.

        With ``refresh`` (default from ``latest_refresh``) the registry is always
        asked; without it a previously fetched latest version is reused.
        """
        if refresh is None:
            refresh = self.latest_refresh
        if not refresh:
            cached = self._cached("latest", self._latest, subject)
            if cached is not None:
                return cached

        with self._inflight.hold(("latest", subject)):
            if not refresh:
                cached = self._peek(self._latest, subject)
                if cached is not None:
                    return cached

            data = self._transport.request(
                "GET", f"/subjects/{quote_subject(subject)}/versions/latest"
            )
            schema = parse_subject_version(data)
            logger.info(
                f"Fetched latest version {schema.version} of {subject} (id {schema.id})",
                extra={"subject": subject, "schema_id": schema.id, "version": schema.version},
            )
            return self._store(schema, latest=True)

    def resolve_by_version(self, subject: str, version: int) -> Schema:
        """Schema registered under ``subject`` at ``version``; fetched once, then cached."""
        if version < 1:
            raise ValueError(f"Schema version must be a positive integer, got {version}")

        cached = self._cached("version", self._by_subject_version, (subject, version))
        if cached is not None:
            return cached

        key = ("version", subject, version)
        with self._inflight.hold(key):
            cached = self._peek(self._by_subject_version, (subject, version))
            if cached is not None:
                return cached
            self._raise_if_not_found(key)

            try:
                data = self._transport.request(
                    "GET", f"/subjects/{quote_subject(subject)}/versions/{version}"
                )
            except NotFoundError:
                self._remember_not_found(key)
                raise
            schema = parse_subject_version(data)
            logger.info(
                f"Fetched {subject} version {version} (id {schema.id})",
                extra={"subject": subject, "schema_id": schema.id, "version": version},
            )
            return self._store(schema)

    def register_or_reuse(
        self,
        subject: str,
        text: str,
        schema_type: SchemaType = SchemaType.AVRO,
        references: Sequence[SchemaReference] = (),
    ) -> Schema:
        """Register ``text`` under ``subject`` unless the same definition is already cached."""
        normalized = normalize_schema_text(text, schema_type)
        cached = self._cached("schema", self._by_subject_schema, (subject, normalized))
        if cached is not None:
            return cached

        with self._inflight.hold(("schema", subject, normalized)):
            cached = self._peek(self._by_subject_schema, (subject, normalized))
            if cached is not None:
                return cached

            refs = tuple(references)
            data = self._transport.request(
                "POST",
                f"/subjects/{quote_subject(subject)}/versions",
                body=encode_schema_request(text, schema_type, refs),
            )
            schema = parse_registered(data, subject, text, schema_type, refs)
            logger.info(
                f"Registered schema under {subject} (id {schema.id})",
                extra={"subject": subject, "schema_id": schema.id},
            )
            return self._store(schema)

    def lookup(
        self,
        subject: str,
        text: str,
        schema_type: SchemaType = SchemaType.AVRO,
        references: Sequence[SchemaReference] = (),
    ) -> Schema:
        """Find an already registered definition under ``subject`` without registering it."""
        normalized = normalize_schema_text(text, schema_type)
        cached = self._cached("schema", self._by_subject_schema, (subject, normalized))
        if cached is not None:
            return cached

        with self._inflight.hold(("schema", subject, normalized)):
            cached = self._peek(self._by_subject_schema, (subject, normalized))
            if cached is not None:
                return cached

            data = self._transport.request(
                "POST",
                f"/subjects/{quote_subject(subject)}",
                body=encode_schema_request(text, schema_type, tuple(references)),
            )
            return self._store(parse_subject_version(data))

    # -- codecs ------------------------------------------------------------

    def attach_codec(self, schema: Schema) -> Codec:
        """Codec for ``schema``, compiled on first use and kept on the schema.

        Raises CodecError if the definition cannot be compiled. The schema stays
        cached and usable for metadata either way.
        """

        def build() -> Codec:
            references = self._reference_texts(schema)
            codec = self._codec_factory.compile(schema.text, schema.schema_type, references)
            logger.info(
                f"Compiled {schema.schema_type} codec for schema {schema.id}",
                extra={"schema_id": schema.id, "subject": schema.subject},
            )
            return codec

        return schema.codec_once(build)

    def _reference_texts(self, schema: Schema) -> list[tuple[str, str]]:
        """Definitions of all schemas ``schema`` references, dependencies first."""
        ordered: list[tuple[str, str]] = []
        seen: set[tuple[str, int]] = set()

        def visit(current: Schema) -> None:
            for ref in current.references:
                if (ref.subject, ref.version) in seen:
                    continue
                seen.add((ref.subject, ref.version))
                dependency = self.resolve_by_version(ref.subject, ref.version)
                visit(dependency)
                ordered.append((ref.name, dependency.text))

        visit(schema)
        return ordered

    # -- invalidation ------------------------------------------------------

    def invalidate_subject_version(self, subject: str, version: int) -> None:
        with self._lock:
            self._not_found.discard(("version", subject, version))
            schema = self._by_subject_version.pop((subject, version), None)
            if schema is not None:
                self._forget(schema)
            # Registrations answered with an id alone carry no version and may be this one.
            for key, held in list(self._by_subject_schema.items()):
                if key[0] == subject and held.version in (None, version):
                    self._forget(held)
            latest = self._latest.get(subject)
            if latest is not None and latest.version == version:
                self._forget(latest)
                self._latest.pop(subject, None)
        logger.info(
            f"Invalidated {subject} version {version}",
            extra={"subject": subject, "version": version},
        )

    def invalidate_subject(self, subject: str) -> None:
        with self._lock:
            self._not_found = {
                key for key in self._not_found if not (key[0] == "version" and key[1] == subject)
            }
            for key in [k for k in self._by_subject_version if k[0] == subject]:
                schema = self._by_subject_version.pop(key, None)
                if schema is not None:
                    self._forget(schema)
            for key in [k for k in self._by_subject_schema if k[0] == subject]:
                schema = self._by_subject_schema.pop(key, None)
                if schema is not None:
                    self._forget(schema)
            self._latest.pop(subject, None)
        logger.info(f"Invalidated subject {subject}", extra={"subject": subject})

    def invalidate_all(self) -> None:
        with self._lock:
            self._by_id.clear()
            self._by_subject_version.clear()
            self._by_subject_schema.clear()
            self._latest.clear()
            self._not_found.clear()
        logger.info("Invalidated schema cache")

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "by_id": len(self._by_id),
                "by_subject_version": len(self._by_subject_version),
                "by_subject_schema": len(self._by_subject_schema),
                "latest": len(self._latest),
                "not_found": len(self._not_found),
            }

    # -- internals ---------------------------------------------------------

    def _cached(
        self, key_space: str, index: Mapping[Any, Schema], key: Hashable
    ) -> Schema | None:
        if not self.cache_responses:
            return None
        schema = self._peek(index, key)
        record_lookup(key_space, hit=schema is not None)
        if schema is not None:
            logger.debug(f"Schema cache hit: {key_space} {key}")
        return schema

    def _peek(self, index: Mapping[Any, Schema], key: Hashable) -> Schema | None:
        if not self.cache_responses:
            return None
        with self._lock:
            schema: Schema | None = index.get(key)
            return schema

    def _raise_if_not_found(self, key: tuple[Hashable, ...]) -> None:
        if not self.cache_not_found:
            return
        with self._lock:
            missing = key in self._not_found
        if missing:
            raise NotFoundError(
                f"Schema registry reported {key[0]} {key[1:]} as not found",
                status_code=404,
                details={"cached": True},
            )

    def _remember_not_found(self, key: tuple[Hashable, ...]) -> None:
        if self.cache_not_found and self.cache_responses:
            with self._lock:
                self._not_found.add(key)

    def _store(self, schema: Schema, latest: bool = False) -> Schema:
        """Index a freshly fetched schema under every key it discloses.

        Returns the canonical instance: an equally wide instance already held for
        the same keys wins over the fetched one, and a narrower one is replaced
        (handing over its codec, if compiled).
        """
        if not self.cache_responses:
            return schema

        with self._lock:
            schema = self._canonical(schema)
            held = self._by_id.get(schema.id)
            if held is None or _is_narrower(held, schema):
                if held is not None:
                    schema.adopt_codec(held)
                self._by_id[schema.id] = schema
            self._not_found.discard(("id", schema.id))

            if schema.subject is not None:
                if schema.version is not None:
                    self._by_subject_version[(schema.subject, schema.version)] = schema
                    self._not_found.discard(("version", schema.subject, schema.version))
                schema_key = (schema.subject, schema.normalized_text)
                held = self._by_subject_schema.get(schema_key)
                if held is None or held.id != schema.id or _is_narrower(held, schema):
                    if held is not None:
                        schema.adopt_codec(held)
                    self._by_subject_schema[schema_key] = schema
                if latest:
                    self._latest[schema.subject] = schema
        return schema

    def _canonical(self, schema: Schema) -> Schema:
        candidates = [self._by_id.get(schema.id)]
        if schema.subject is not None:
            if schema.version is not None:
                candidates.append(self._by_subject_version.get((schema.subject, schema.version)))
            candidates.append(self._by_subject_schema.get((schema.subject, schema.normalized_text)))

        for held in candidates:
            if (
                held is not None
                and held.id == schema.id
                and held.subject == schema.subject
                and (schema.version is None or held.version == schema.version)
                and not _is_narrower(held, schema)
            ):
                return held
        return schema

    def _forget(self, schema: Schema) -> None:
        """Drop every index entry that serves ``schema``. Caller holds the lock."""
        held = self._by_id.get(schema.id)
        if held is not None and (held is schema or held.subject in (None, schema.subject)):
            del self._by_id[schema.id]
        for key in [k for k, s in self._by_subject_schema.items() if s is schema]:
            del self._by_subject_schema[key]
        for key in [k for k, s in self._by_subject_version.items() if s is schema]:
            del self._by_subject_version[key]
        if schema.subject is not None and self._latest.get(schema.subject) is schema:
            del self._latest[schema.subject]
