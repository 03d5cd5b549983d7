"""Round stores with Redis backend and in-memory fallback."""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from config import config
from core.cards import Card, decode_cards
from core.game.events import LogAction, RoundLogEntry
from core.game.round import Round, Wallet, new_wallet_id
from core.game.service import RoundStore
from core.game.state import RoundState
from core.hand import Hand

logger = logging.getLogger(__name__)


def _serialize_round(round_: Round) -> dict[str, Any]:
    """Serialize a round for storage."""
    return {
        "id": round_.id,
        "user_id": round_.user_id,
        "seed": round_.seed,
        "state": round_.state.value,
        "nonce": round_.nonce,
        "hand": round_.hand.codes,
        "total": round_.total,
        "points": round_.points,
        "created_at": round_.created_at.isoformat(),
        "updated_at": round_.updated_at.isoformat(),
        "finished_at": round_.finished_at.isoformat() if round_.finished_at else None,
    }


def _deserialize_round(data: dict[str, Any]) -> Round:
    """
    Restore a round from storage.

    Raises:
        InvalidCardCode: If the stored hand holds a malformed card code
    """
    return Round(
        id=data["id"],
        user_id=data["user_id"],
        seed=data["seed"],
        state=RoundState(data["state"]),
        nonce=data["nonce"],
        hand=Hand(decode_cards(data["hand"])),
        total=data["total"],
        points=data["points"],
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
        finished_at=(
            datetime.fromisoformat(data["finished_at"]) if data["finished_at"] else None
        ),
    )


def _serialize_log(entry: RoundLogEntry) -> dict[str, Any]:
    """Serialize an audit entry for storage."""
    return {
        "id": entry.id,
        "round_id": entry.round_id,
        "action": entry.action.value,
        "card": entry.card.code if entry.card else None,
        "nonce": entry.nonce,
        "total_after": entry.total_after,
        "created_at": entry.created_at.isoformat(),
    }


def _deserialize_log(data: dict[str, Any]) -> RoundLogEntry:
    """Restore an audit entry from storage."""
    return RoundLogEntry(
        id=data["id"],
        round_id=data["round_id"],
        action=LogAction(data["action"]),
        card=Card.from_code(data["card"]) if data["card"] else None,
        nonce=data["nonce"],
        total_after=data["total_after"],
        created_at=datetime.fromisoformat(data["created_at"]),
    )


def _matches(
    current: Round | None,
    user_id: str,
    expected_state: RoundState | None,
    expected_nonce: int | None,
) -> bool:
    """Check a stored round against the conditions of a write."""
    if current is None or current.user_id != user_id:
        return False
    if expected_state is not None and current.state != expected_state:
        return False
    if expected_nonce is not None and current.nonce != expected_nonce:
        return False
    return True


class InMemoryRoundStore(RoundStore):
    """In-memory round store for local development and tests."""

    def __init__(self) -> None:
        self._rounds: dict[str, Round] = {}
        self._latest: dict[str, str] = {}
        self._logs: dict[str, list[RoundLogEntry]] = {}
        self._wallets: dict[str, Wallet] = {}
        self._lock = asyncio.Lock()

    def _wallet(self, user_id: str) -> Wallet:
        if user_id not in self._wallets:
            self._wallets[user_id] = Wallet(user_id=user_id)
        return self._wallets[user_id]

    def _latest_round(self, user_id: str) -> Round | None:
        round_id = self._latest.get(user_id)
        return self._rounds.get(round_id) if round_id else None

    async def load_round(self, user_id: str, round_id: str) -> Round | None:
        """Get one of the user's rounds."""
        round_ = self._rounds.get(round_id)
        if round_ is None or round_.user_id != user_id:
            return None
        return round_

    async def load_playing_round(self, user_id: str) -> Round | None:
        """Get the user's playing round, if any."""
        round_ = self._latest_round(user_id)
        if round_ is not None and round_.state == RoundState.PLAYING:
            return round_
        return None

    async def load_latest_round(self, user_id: str) -> Round | None:
        """Get the user's most recent round."""
        return self._latest_round(user_id)

    async def create_round(
        self, round_: Round, logs: tuple[RoundLogEntry, ...]
    ) -> tuple[Round, bool]:
        """Insert a round unless one is already playing."""
        async with self._lock:
            latest = self._latest_round(round_.user_id)
            if latest is not None and latest.state == RoundState.PLAYING:
                return latest, False
            self._rounds[round_.id] = round_
            self._latest[round_.user_id] = round_.id
            self._logs.setdefault(round_.id, []).extend(logs)
            return round_, True

    async def save_round(
        self,
        round_: Round,
        expected_state: RoundState | None = None,
        expected_nonce: int | None = None,
    ) -> bool:
        """Conditionally replace a stored round."""
        async with self._lock:
            current = self._rounds.get(round_.id)
            if not _matches(current, round_.user_id, expected_state, expected_nonce):
                return False
            self._rounds[round_.id] = round_
            return True

    async def finalize_stand(
        self,
        round_: Round,
        earned: int,
        log: RoundLogEntry,
        expected_nonce: int,
    ) -> Wallet | None:
        """Finish the round, log it and credit the wallet in one step."""
        async with self._lock:
            current = self._rounds.get(round_.id)
            if not _matches(current, round_.user_id, RoundState.PLAYING, expected_nonce):
                return None
            self._rounds[round_.id] = round_
            self._logs.setdefault(round_.id, []).append(log)
            wallet = self._wallet(round_.user_id).credit(earned)
            self._wallets[round_.user_id] = wallet
            return wallet

    async def append_log(self, entry: RoundLogEntry) -> None:
        """Append an audit entry."""
        async with self._lock:
            self._logs.setdefault(entry.round_id, []).append(entry)

    async def list_logs(self, round_id: str) -> list[RoundLogEntry]:
        """List a round's audit entries."""
        return list(self._logs.get(round_id, []))

    async def get_or_create_wallet(self, user_id: str) -> Wallet:
        """Get or create the user's wallet."""
        async with self._lock:
            return self._wallet(user_id)

    async def credit_wallet(self, user_id: str, amount: int) -> Wallet:
        """Add to the user's balance."""
        async with self._lock:
            wallet = self._wallet(user_id).credit(amount)
            self._wallets[user_id] = wallet
            return wallet


class RedisRoundStore(RoundStore):
    """
    Redis-backed round store.

    Conditional writes use WATCH/MULTI: the watched keys are read and
    checked, and the queued writes only commit if nobody touched those keys
    in between. A ``WatchError`` means another request won and the check is
    repeated against the new value.
    """

    def __init__(self, redis_client: "redis.Redis", prefix: str | None = None) -> None:
        self._redis = redis_client
        self._prefix = prefix or config.game.key_prefix

    def _round_key(self, round_id: str) -> str:
        return f"{self._prefix}round:{round_id}"

    def _log_key(self, round_id: str) -> str:
        return f"{self._prefix}round:{round_id}:log"

    def _latest_key(self, user_id: str) -> str:
        return f"{self._prefix}user:{user_id}:latest"

    def _wallet_key(self, user_id: str) -> str:
        return f"{self._prefix}wallet:{user_id}"

    @staticmethod
    def _decode_round(raw: str | bytes | None) -> Round | None:
        if raw is None:
            return None
        return _deserialize_round(json.loads(raw))

    async def load_round(self, user_id: str, round_id: str) -> Round | None:
        """Get one of the user's rounds."""
        round_ = self._decode_round(await self._redis.get(self._round_key(round_id)))
        if round_ is None or round_.user_id != user_id:
            return None
        return round_

    async def load_latest_round(self, user_id: str) -> Round | None:
        """Get the user's most recent round."""
        round_id = await self._redis.get(self._latest_key(user_id))
        if round_id is None:
            return None
        if isinstance(round_id, bytes):
            round_id = round_id.decode()
        return await self.load_round(user_id, round_id)

    async def load_playing_round(self, user_id: str) -> Round | None:
        """Get the user's playing round, if any."""
        round_ = await self.load_latest_round(user_id)
        if round_ is not None and round_.state == RoundState.PLAYING:
            return round_
        return None

    async def create_round(
        self, round_: Round, logs: tuple[RoundLogEntry, ...]
    ) -> tuple[Round, bool]:
        """Insert a round unless one is already playing."""
        latest_key = self._latest_key(round_.user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(latest_key)
                    latest_id = await pipe.get(latest_key)
                    if latest_id is not None:
                        if isinstance(latest_id, bytes):
                            latest_id = latest_id.decode()
                        latest_round_key = self._round_key(latest_id)
                        await pipe.watch(latest_round_key)
                        latest = self._decode_round(await pipe.get(latest_round_key))
                        if latest is not None and latest.state == RoundState.PLAYING:
                            return latest, False

                    pipe.multi()
                    pipe.set(self._round_key(round_.id), json.dumps(_serialize_round(round_)))
                    pipe.set(latest_key, round_.id)
                    if logs:
                        pipe.rpush(
                            self._log_key(round_.id),
                            *(json.dumps(_serialize_log(entry)) for entry in logs),
                        )
                    await pipe.execute()
                    return round_, True
                except WatchError:
                    logger.debug("create_round for %s retried after concurrent write", round_.user_id)
                    continue

    async def save_round(
        self,
        round_: Round,
        expected_state: RoundState | None = None,
        expected_nonce: int | None = None,
    ) -> bool:
        """Conditionally replace a stored round."""
        key = self._round_key(round_.id)
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    current = self._decode_round(await pipe.get(key))
                    if not _matches(current, round_.user_id, expected_state, expected_nonce):
                        return False
                    pipe.multi()
                    pipe.set(key, json.dumps(_serialize_round(round_)))
                    await pipe.execute()
                    return True
                except WatchError:
                    logger.debug("save_round %s retried after concurrent write", round_.id)
                    continue

    async def finalize_stand(
        self,
        round_: Round,
        earned: int,
        log: RoundLogEntry,
        expected_nonce: int,
    ) -> Wallet | None:
        """Finish the round, log it and credit the wallet in one transaction."""
        key = self._round_key(round_.id)
        wallet_key = self._wallet_key(round_.user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    current = self._decode_round(await pipe.get(key))
                    if not _matches(current, round_.user_id, RoundState.PLAYING, expected_nonce):
                        return None
                    pipe.multi()
                    pipe.set(key, json.dumps(_serialize_round(round_)))
                    pipe.rpush(self._log_key(round_.id), json.dumps(_serialize_log(log)))
                    pipe.hsetnx(wallet_key, "id", new_wallet_id())
                    if earned > 0:
                        pipe.hincrby(wallet_key, "balance", earned)
                    else:
                        pipe.hsetnx(wallet_key, "balance", 0)
                    pipe.hgetall(wallet_key)
                    *_, data = await pipe.execute()
                    return self._decode_wallet(round_.user_id, data)
                except WatchError:
                    logger.debug("finalize_stand %s retried after concurrent write", round_.id)
                    continue

    async def append_log(self, entry: RoundLogEntry) -> None:
        """Append an audit entry."""
        await self._redis.rpush(self._log_key(entry.round_id), json.dumps(_serialize_log(entry)))

    async def list_logs(self, round_id: str) -> list[RoundLogEntry]:
        """List a round's audit entries."""
        raw_entries = await self._redis.lrange(self._log_key(round_id), 0, -1)
        return [_deserialize_log(json.loads(raw)) for raw in raw_entries]

    @staticmethod
    def _decode_wallet(user_id: str, data: dict[Any, Any]) -> Wallet:
        fields = {
            (k.decode() if isinstance(k, bytes) else k): (v.decode() if isinstance(v, bytes) else v)
            for k, v in data.items()
        }
        return Wallet(user_id=user_id, balance=int(fields["balance"]), id=fields["id"])

    async def get_or_create_wallet(self, user_id: str) -> Wallet:
        """Get or create the user's wallet."""
        key = self._wallet_key(user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hsetnx(key, "id", new_wallet_id())
            pipe.hsetnx(key, "balance", 0)
            pipe.hgetall(key)
            _, _, data = await pipe.execute()
        return self._decode_wallet(user_id, data)

    async def credit_wallet(self, user_id: str, amount: int) -> Wallet:
        """Atomically add to the user's balance."""
        key = self._wallet_key(user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hsetnx(key, "id", new_wallet_id())
            pipe.hsetnx(key, "balance", 0)
            pipe.hincrby(key, "balance", max(amount, 0))
            pipe.hgetall(key)
            *_, data = await pipe.execute()
        return self._decode_wallet(user_id, data)


# Global round store instance
_round_store: RoundStore | None = None


async def get_round_store() -> RoundStore:
    """Get or create the round store for the configured backend."""
    global _round_store

    if _round_store is not None:
        return _round_store

    if config.store_backend in ("auto", "redis"):
        redis_client = redis.from_url(config.redis.url, decode_responses=True)
        try:
            await redis_client.ping()
        except (RedisError, OSError) as exc:
            if config.store_backend == "redis":
                raise
            logger.warning("Redis unavailable at %s (%s); using in-memory store", config.redis.url, exc)
        else:
            logger.info("Using Redis round store at %s", config.redis.url)
            _round_store = RedisRoundStore(redis_client)
            return _round_store

    _round_store = InMemoryRoundStore()
    return _round_store
