# comments in English; reST docstrings
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

import redis

from authcore.models.base import Audit, touch_audit
from authcore.services._shared.ports.auth_token_store import AuthTokenRecord, AuthTokenStore

log = logging.getLogger(__name__)


def _b(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


def _ts(dt: datetime | None) -> str:
    return "" if dt is None else f"{dt.astimezone(UTC).timestamp():.6f}"


def _dt(raw: Any) -> datetime | None:
    text = _b(raw)
    return datetime.fromtimestamp(float(text), tz=UTC) if text else None


@dataclass(slots=True)
class RedisAuthTokenStore(AuthTokenStore):
    """
    Redis-backed session store.

    Layout
    ------
    - ``at:{refresh_token}``: hash with every record field.
    - ``at:u:{identity_id}``: set of the identity's refresh tokens.
    - ``at:a:{access_token}``: refresh token currently holding that access token.
    - ``at:id:{record_id}``: refresh token of a record id.

    Keys carry no TTL: records are kept after expiry, as in the SQL store.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(refresh_token: str) -> str:
        return f"at:{refresh_token}"

    @staticmethod
    def _ku(identity_id: str) -> str:
        return f"at:u:{identity_id}"

    @staticmethod
    def _ka(access_token: str) -> str:
        return f"at:a:{access_token}"

    @staticmethod
    def _kid(record_id: str) -> str:
        return f"at:id:{record_id}"

    @staticmethod
    def _to_mapping(record: AuthTokenRecord) -> dict[str, str]:
        a = record.audit
        return {
            "id": record.id,
            "identity_id": record.identity_id,
            "access_token": record.access_token,
            "refresh_token": record.refresh_token,
            "access_expires_at": _ts(record.access_expires_at),
            "refresh_expires_at": _ts(record.refresh_expires_at),
            "origin_address": record.origin_address or "",
            "client_agent": record.client_agent or "",
            "revoked": "1" if record.revoked else "0",
            "revoked_at": _ts(record.revoked_at),
            "created_at": _ts(a.created_at),
            "updated_at": _ts(a.updated_at),
            "created_by": a.created_by or "",
            "updated_by": a.updated_by or "",
            "deleted_at": _ts(a.deleted_at),
            "version": str(a.version),
        }

    @staticmethod
    def _from_hash(h: dict[Any, Any]) -> AuthTokenRecord:
        def get(name: str) -> str:
            return _b(h.get(name.encode(), h.get(name)))

        audit = Audit(
            created_at=_dt(get("created_at")),  # type: ignore[arg-type]
            updated_at=_dt(get("updated_at")),  # type: ignore[arg-type]
            created_by=get("created_by") or None,
            updated_by=get("updated_by") or None,
            deleted_at=_dt(get("deleted_at")),
            version=int(get("version") or "1"),
        )
        return AuthTokenRecord(
            id=get("id"),
            identity_id=get("identity_id"),
            access_token=get("access_token"),
            refresh_token=get("refresh_token"),
            access_expires_at=_dt(get("access_expires_at")),  # type: ignore[arg-type]
            refresh_expires_at=_dt(get("refresh_expires_at")),  # type: ignore[arg-type]
            audit=audit,
            origin_address=get("origin_address") or None,
            client_agent=get("client_agent") or None,
            revoked=get("revoked") == "1",
            revoked_at=_dt(get("revoked_at")),
        )

    # -------------------- API ------------------------

    def save_or_update(self, record: AuthTokenRecord) -> AuthTokenRecord:
        """
        Insert or overwrite a record with WATCH/MULTI/EXEC.

        A record already revoked in Redis stays revoked; the returned record
        reflects what was written.

        :raises ValueError: If the refresh token is already used by another record.
        """
        key = self._k(record.refresh_token)
        k_id = self._kid(record.id)

        def _txn(pipe: redis.client.Pipeline) -> AuthTokenRecord:
            current = pipe.hgetall(key)
            previous_refresh = _b(pipe.get(k_id)) or None
            to_write = record
            if current:
                stored = self._from_hash(current)
                if stored.id != record.id:
                    raise ValueError("duplicate refresh token")
                if stored.revoked:
                    to_write = replace(record, revoked=True, revoked_at=stored.revoked_at)
                old_access = stored.access_token
            else:
                old_access = None

            pipe.multi()
            if previous_refresh and previous_refresh != record.refresh_token:
                pipe.delete(self._k(previous_refresh))
            if old_access and old_access != to_write.access_token:
                pipe.delete(self._ka(old_access))
            pipe.hset(key, mapping=self._to_mapping(to_write))
            pipe.set(k_id, to_write.refresh_token)
            pipe.sadd(self._ku(to_write.identity_id), to_write.refresh_token)
            if to_write.revoked:
                pipe.delete(self._ka(to_write.access_token))
            else:
                pipe.set(self._ka(to_write.access_token), to_write.refresh_token)
            return to_write

        return self.r.transaction(_txn, key, k_id, value_from_callable=True)

    def find_by_refresh_token(self, refresh_token: str) -> AuthTokenRecord | None:
        h = self.r.hgetall(self._k(refresh_token))
        return self._from_hash(h) if h else None

    def find_by_access_token(self, access_token: str) -> AuthTokenRecord | None:
        refresh = _b(self.r.get(self._ka(access_token)))
        if not refresh:
            return None
        record = self.find_by_refresh_token(refresh)
        if record is None or record.revoked or record.access_token != access_token:
            return None
        return record

    def list_active_by_identity(self, identity_id: str) -> list[AuthTokenRecord]:
        members = sorted(_b(m) for m in self.r.smembers(self._ku(identity_id)))
        records = [rec for m in members if (rec := self.find_by_refresh_token(m))]
        active = [rec for rec in records if not rec.revoked]
        return sorted(active, key=lambda rec: (rec.audit.created_at, rec.id), reverse=True)

    def _queue_revoke(
        self,
        pipe: redis.client.Pipeline,
        key: str,
        stored: AuthTokenRecord,
        *,
        at: datetime,
        actor_id: str | None,
    ) -> None:
        """Queue the writes revoking ``stored``; the caller is inside MULTI."""
        audit = touch_audit(stored.audit, actor_id or stored.identity_id, at)
        pipe.hset(
            key,
            mapping={
                "revoked": "1",
                "revoked_at": _ts(at),
                "updated_at": _ts(audit.updated_at),
                "updated_by": audit.updated_by or "",
                "version": str(audit.version),
            },
        )
        pipe.delete(self._ka(stored.access_token))

    def revoke_by_refresh_token(
        self, refresh_token: str, *, at: datetime, actor_id: str | None = None
    ) -> bool:
        key = self._k(refresh_token)

        def _txn(pipe: redis.client.Pipeline) -> bool:
            h = pipe.hgetall(key)
            if not h:
                return False
            stored = self._from_hash(h)
            if stored.revoked:
                return False
            pipe.multi()
            self._queue_revoke(pipe, key, stored, at=at, actor_id=actor_id)
            return True

        changed = bool(self.r.transaction(_txn, key, value_from_callable=True))
        if not changed:
            log.warning("auth_token.revoke.noop")
        return changed

    def revoke_all_by_identity(
        self, identity_id: str, *, at: datetime, actor_id: str | None = None
    ) -> int:
        """
        Revoke every active session of ``identity_id`` in one MULTI/EXEC.

        The index set and every member hash are watched, so either all
        sessions flip or, on a concurrent change, the whole read is retried.
        """
        k_user = self._ku(identity_id)

        def _txn(pipe: redis.client.Pipeline) -> int:
            keys = [self._k(_b(m)) for m in pipe.smembers(k_user)]
            if keys:
                pipe.watch(*keys)
            pending = []
            for key in keys:
                h = pipe.hgetall(key)
                if h and not (stored := self._from_hash(h)).revoked:
                    pending.append((key, stored))
            pipe.multi()
            for key, stored in pending:
                self._queue_revoke(pipe, key, stored, at=at, actor_id=actor_id)
            return len(pending)

        count = int(self.r.transaction(_txn, k_user, value_from_callable=True))
        log.info(
            "auth_token.revoke_all",
            extra={"identity_id": identity_id, "revoked_count": count},
        )
        return count
