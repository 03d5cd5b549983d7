"""Round service: nonce checks and conditional writes around the engine."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable
from uuid import uuid4

from core.errors import ConflictReason, DeckExhausted, InvalidInput, NotFound, StateConflict
from core.game.engine import hit_round, stand_round, start_round
from core.game.events import RoundLogEntry
from core.game.round import Round, RoundSnapshot, Wallet
from core.game.state import RoundAction, RoundState, can_perform
from core.rng import derive_seed

logger = logging.getLogger(__name__)


class RoundStore(ABC):
    """
    Persistence contract for rounds, wallets and audit logs.

    Implementations must make ``create_round``, ``save_round`` and
    ``finalize_stand`` atomic with respect to their conditions.
    """

    @abstractmethod
    async def load_round(self, user_id: str, round_id: str) -> Round | None:
        """Get one of the user's rounds."""
        ...

    @abstractmethod
    async def load_playing_round(self, user_id: str) -> Round | None:
        """Get the user's round that is still playing, if any."""
        ...

    @abstractmethod
    async def load_latest_round(self, user_id: str) -> Round | None:
        """Get the user's most recently started round."""
        ...

    @abstractmethod
    async def create_round(
        self, round_: Round, logs: tuple[RoundLogEntry, ...]
    ) -> tuple[Round, bool]:
        """
        Insert a round and its logs unless the user already has a playing round.

        Returns:
            The stored round and whether it was created (False means the
            existing playing round is returned instead)
        """
        ...

    @abstractmethod
    async def save_round(
        self,
        round_: Round,
        expected_state: RoundState | None = None,
        expected_nonce: int | None = None,
    ) -> bool:
        """
        Replace a stored round if it still matches the expectations.

        Returns:
            True if written, False if the stored round no longer matched
        """
        ...

    @abstractmethod
    async def finalize_stand(
        self,
        round_: Round,
        earned: int,
        log: RoundLogEntry,
        expected_nonce: int,
    ) -> Wallet | None:
        """
        Atomically finish a round, append its log and credit the wallet.

        Applies only while the stored round is playing at ``expected_nonce``.

        Returns:
            The credited wallet, or None if another request got there first
        """
        ...

    @abstractmethod
    async def append_log(self, entry: RoundLogEntry) -> None:
        """Append an audit entry."""
        ...

    @abstractmethod
    async def list_logs(self, round_id: str) -> list[RoundLogEntry]:
        """List the audit entries of a round in insertion order."""
        ...

    @abstractmethod
    async def get_or_create_wallet(self, user_id: str) -> Wallet:
        """Get the user's wallet, creating an empty one if needed."""
        ...

    @abstractmethod
    async def credit_wallet(self, user_id: str, amount: int) -> Wallet:
        """Atomically add to the user's balance."""
        ...


def default_seed(user_id: str) -> str:
    """Fresh public seed for a new round."""
    return derive_seed(user_id, datetime.now(timezone.utc).isoformat(), uuid4().hex)


class RoundService:
    """
    Applies round actions for one store.

    Every refusal raises a domain error carrying the authoritative snapshot
    so callers can resynchronize and retry blindly.
    """

    def __init__(
        self,
        store: RoundStore,
        seed_factory: Callable[[str], str] = default_seed,
    ) -> None:
        self._store = store
        self._seed_factory = seed_factory

    @property
    def store(self) -> RoundStore:
        return self._store

    async def _snapshot(self, round_: Round) -> RoundSnapshot:
        wallet = await self._store.get_or_create_wallet(round_.user_id)
        return RoundSnapshot.of(round_, wallet.balance)

    async def _require_round(self, user_id: str, round_id: str) -> Round:
        if not round_id:
            raise InvalidInput("roundId is required")
        round_ = await self._store.load_round(user_id, round_id)
        if round_ is None:
            raise NotFound()
        return round_

    async def _check_playable(
        self, round_: Round, action: RoundAction, expected_nonce: int | None
    ) -> None:
        if not can_perform(round_.state, action):
            logger.info("Refused %s on round %s in state %s", action.value, round_.id, round_.state)
            raise StateConflict(ConflictReason.ILLEGAL_STATE, await self._snapshot(round_))
        if expected_nonce is not None and expected_nonce != round_.nonce:
            logger.info(
                "Stale %s on round %s: expected nonce %s, current %s",
                action.value,
                round_.id,
                expected_nonce,
                round_.nonce,
            )
            raise StateConflict(ConflictReason.STALE_NONCE, await self._snapshot(round_))

    async def _lost_race(self, user_id: str, round_id: str) -> StateConflict:
        current = await self._require_round(user_id, round_id)
        return StateConflict(ConflictReason.LOST_RACE, await self._snapshot(current))

    async def status(self, user_id: str, round_id: str | None = None) -> RoundSnapshot:
        """Snapshot of a round, of the latest round, or an idle snapshot."""
        if round_id is not None:
            return await self._snapshot(await self._require_round(user_id, round_id))

        round_ = await self._store.load_latest_round(user_id)
        if round_ is None:
            wallet = await self._store.get_or_create_wallet(user_id)
            return RoundSnapshot.idle(wallet.balance)
        return await self._snapshot(round_)

    async def start(self, user_id: str, deal_one: bool = True) -> RoundSnapshot:
        """Start a round, or return the one already playing."""
        wallet = await self._store.get_or_create_wallet(user_id)

        existing = await self._store.load_playing_round(user_id)
        if existing is not None:
            logger.info("User %s already playing round %s", user_id, existing.id)
            return RoundSnapshot.of(existing, wallet.balance)

        transition = start_round(self._seed_factory(user_id), user_id, deal_one=deal_one)
        round_, created = await self._store.create_round(transition.round, transition.logs)
        if created:
            logger.info("Started round %s for user %s (deal_one=%s)", round_.id, user_id, deal_one)
        return RoundSnapshot.of(round_, wallet.balance)

    async def hit(
        self, user_id: str, round_id: str, expected_nonce: int | None = None
    ) -> RoundSnapshot:
        """Draw one card into a playing round."""
        round_ = await self._require_round(user_id, round_id)
        await self._check_playable(round_, RoundAction.HIT, expected_nonce)

        try:
            transition = hit_round(round_)
        except DeckExhausted as exc:
            logger.warning("Deck exhausted for round %s at nonce %s", round_.id, round_.nonce)
            exc.snapshot = await self._snapshot(round_)
            raise

        saved = await self._store.save_round(
            transition.round,
            expected_state=RoundState.PLAYING,
            expected_nonce=round_.nonce,
        )
        if not saved:
            logger.info("Hit on round %s lost to a concurrent update", round_.id)
            raise await self._lost_race(user_id, round_id)

        for entry in transition.logs:
            await self._store.append_log(entry)

        updated = transition.round
        logger.info(
            "Round %s: drew %s, total %s, state %s",
            updated.id,
            transition.card.code if transition.card else None,
            updated.total,
            updated.state,
        )
        return await self._snapshot(updated)

    async def stand(
        self, user_id: str, round_id: str, expected_nonce: int | None = None
    ) -> RoundSnapshot:
        """Finish a playing round and credit its points exactly once."""
        round_ = await self._require_round(user_id, round_id)
        await self._check_playable(round_, RoundAction.STAND, expected_nonce)

        transition = stand_round(round_)
        wallet = await self._store.finalize_stand(
            transition.round,
            transition.points,
            transition.logs[0],
            expected_nonce=round_.nonce,
        )
        if wallet is None:
            logger.info("Stand on round %s lost the finalize race", round_.id)
            raise await self._lost_race(user_id, round_id)

        logger.info(
            "Round %s finished with total %s for %s points",
            round_.id,
            transition.round.total,
            transition.points,
        )
        return RoundSnapshot.of(transition.round, wallet.balance)

    async def history(self, user_id: str, round_id: str) -> list[RoundLogEntry]:
        """Audit entries of one of the user's rounds."""
        round_ = await self._require_round(user_id, round_id)
        return await self._store.list_logs(round_.id)
