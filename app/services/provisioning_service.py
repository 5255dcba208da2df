"""
Provisioning service — creates a user (and optional artist profile) in the
database and in the identity provider as one logical unit of work.

Design notes
------------
- The two systems share no transaction.  The database transaction holds
  the "intent"; the identity provider call is a side effect issued from
  inside that transaction so the orchestrator can still discard the rows
  if the call fails.
- The provider uid is the database primary key (as a string).  That is
  why the inserts are flushed before the provider call: the key must be
  known first.  The rows are therefore visible to this transaction
  before the provider has answered, and are rolled back if it refuses.
- Once a credential exists (or the create call's outcome is unknown,
  e.g. after a timeout) a delete is registered in a ``CompensationLog``.
  Any later failure, including a failed COMMIT, unwinds that log before
  the error is returned.
- Nothing is retried here.  A failed call leaves no partial state, so
  the caller may simply retry.
- Every exit path raises ``ProvisioningError``; raw store / provider
  exceptions are translated by ``translate_error``.
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import RelationalStore
from app.identity import IdentityProvider, IdentityProviderUnavailable
from app.models import ArtistProfile, User
from app.schemas import ArtistCreate, UserCreate
from app.services.error_translator import translate_error
from app.services.record_splitter import PROVISIONING_PATH, split_user_payload
from app.services.saga import CompensationLog
from app.services.user_service import artist_to_dict, user_to_dict

logger = logging.getLogger(__name__)


def _log_detached_outcome(task: asyncio.Future) -> None:
    if task.cancelled():
        logger.error("Provisioning was cancelled after its caller went away")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Provisioning failed after its caller was cancelled: %s",
            exc,
            exc_info=exc,
        )
    else:
        logger.info("Provisioning finished after its caller was cancelled (id=%s)", task.result()["id"])


class ProvisioningOrchestrator:
    def __init__(self, store: RelationalStore, identity_provider: IdentityProvider) -> None:
        self._store = store
        self._identity = identity_provider

    async def provision(self, payload: dict) -> dict:
        """
        Create the user described by *payload* in both systems of record.

        Returns the serialised user, or user + artist profile + ``genre``
        placeholder when the payload carries the artist flag.  Raises
        ``ProvisioningError`` on any failure.
        """
        # 1. Validate and split before touching either store.
        user_data, artist_data = split_user_payload(payload)

        # Once the transaction is open the flow must reach commit or
        # compensation even if the calling task is cancelled.
        task = asyncio.ensure_future(self._provision(user_data, artist_data))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # Nobody awaits the task any more; report its outcome here.
            task.add_done_callback(_log_detached_outcome)
            raise

    async def _provision(self, user_data: UserCreate, artist_data: ArtistCreate | None) -> dict:
        compensations = CompensationLog()

        async def unit_of_work(db: AsyncSession) -> dict:
            return await self._write(db, user_data, artist_data, compensations)

        try:
            result = await self._store.run_in_transaction(unit_of_work)
        except Exception as exc:
            if compensations:
                failed = await compensations.unwind()
                if failed:
                    logger.error(
                        "Provisioning of %r left external state behind: %s",
                        user_data.email,
                        ", ".join(failed),
                    )
            error = translate_error(exc, PROVISIONING_PATH)
            if error is exc:
                raise
            raise error from exc

        logger.info("Provisioned user id=%s artist=%s", result["id"], artist_data is not None)
        return result

    async def _write(
        self,
        db: AsyncSession,
        user_data: UserCreate,
        artist_data: ArtistCreate | None,
        compensations: CompensationLog,
    ) -> dict:
        # 2-3. Relational inserts; flushing assigns the key and surfaces
        # uniqueness conflicts before the provider is called.
        user = User(
            name=user_data.name,
            email=user_data.email,
            is_artist=artist_data is not None,
        )
        db.add(user)
        await db.flush()

        artist = None
        if artist_data is not None:
            artist = ArtistProfile(user_id=user.id, genre_id=artist_data.genre_id)
            db.add(artist)
            await db.flush()

        # 4. External side effect, keyed by the relational id.
        uid = str(user.id)
        try:
            await self._identity.create(
                uid=uid,
                email=user_data.email,
                password=user_data.password.get_secret_value(),
                display_name=user_data.name,
            )
        except IdentityProviderUnavailable:
            # The account may exist even though we never saw the answer.
            compensations.register(f"identity.delete({uid})", lambda: self._identity.delete(uid))
            raise
        compensations.register(f"identity.delete({uid})", lambda: self._identity.delete(uid))

        # 6. Assemble the combined record.
        data = user_to_dict(user)
        if artist is not None:
            data.update(artist_to_dict(artist))
            data["genre"] = artist_data.genre
        return data
