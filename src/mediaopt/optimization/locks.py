"""Media locks stored as expiring transients."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.db_models import TransientModel
from ..domain.models import LockAction
from ..exceptions import handle_sqlalchemy_errors

logger = logging.getLogger(__name__)

LOCK_NAME = "mediaopt_{context}_{media_id}_process_locked"
DEFAULT_LOCK_TTL_SECONDS = 10 * 60

SITE_SCOPE = "site"
NETWORK_SCOPE = "network"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TransientStore:
    """String-keyed values with an expiry, scoped per site or network-wide.

    An expired row reads as absent; nothing else ever cleans a value up.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or _utcnow

    @staticmethod
    def _scope(network: bool) -> str:
        return NETWORK_SCOPE if network else SITE_SCOPE

    def get(self, name: str, *, network: bool = False) -> str | None:
        with handle_sqlalchemy_errors(entity="transient"), self._session_factory() as session:
            stmt = select(TransientModel).where(
                TransientModel.scope == self._scope(network),
                TransientModel.name == name,
            )
            model = session.execute(stmt).scalar_one_or_none()
            if model is None or model.expires_at <= self._clock():
                return None
            return model.value

    def set(self, name: str, value: str, *, ttl_seconds: int, network: bool = False) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with handle_sqlalchemy_errors(entity="transient"), self._session_factory() as session:
            stmt = select(TransientModel).where(
                TransientModel.scope == self._scope(network),
                TransientModel.name == name,
            )
            model = session.execute(stmt).scalar_one_or_none()
            if model is None:
                model = TransientModel(scope=self._scope(network), name=name)
                session.add(model)
            model.value = value
            model.expires_at = expires_at
            session.commit()

    def delete(self, name: str, *, network: bool = False) -> None:
        with handle_sqlalchemy_errors(entity="transient"), self._session_factory() as session:
            session.execute(
                delete(TransientModel).where(
                    TransientModel.scope == self._scope(network),
                    TransientModel.name == name,
                )
            )
            session.commit()


class MediaLock:
    """Advisory lock of one media; callers check :meth:`is_locked` before :meth:`lock`."""

    def __init__(
        self,
        store: TransientStore,
        *,
        context: str,
        media_id: int,
        network_wide: bool = False,
        ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.name = LOCK_NAME.format(context=context, media_id=media_id)
        self.network_wide = network_wide
        self.ttl_seconds = ttl_seconds

    def is_locked(self) -> LockAction | None:
        value = self.store.get(self.name, network=self.network_wide)
        if not value:
            return None
        return LockAction.normalize(value)

    def lock(self, action: str | LockAction = LockAction.OPTIMIZING) -> LockAction:
        normalized = LockAction.normalize(action)
        self.store.set(
            self.name,
            normalized.value,
            ttl_seconds=self.ttl_seconds,
            network=self.network_wide,
        )
        logger.debug("media.lock.acquired", extra={"lock": self.name, "action": normalized.value})
        return normalized

    def unlock(self) -> None:
        self.store.delete(self.name, network=self.network_wide)
        logger.debug("media.lock.released", extra={"lock": self.name})
