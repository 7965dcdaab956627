# contractdesk/services/sequence.py
from __future__ import annotations
import logging

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError

from ..errors import TransientStorageError
from ..models.counter import Counter

log = logging.getLogger(__name__)

_UPSERT_DIALECTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}


class SequenceGenerator:
    """Hands out strictly increasing integers per counter name.

    The increment is one statement at the storage layer (upsert + RETURNING),
    never a read followed by a write in Python. It runs on the injected
    session, so it joins whatever transaction that session has open.
    """

    def __init__(self, session):
        self.session = session

    def next(self, counter_name: str) -> int:
        if not counter_name:
            raise ValueError("counter_name is required")
        try:
            dialect = self.session.get_bind().dialect.name
            insert = _UPSERT_DIALECTS.get(dialect)
            if insert is not None:
                value = self._upsert(insert, counter_name)
            else:
                value = self._update_then_read(counter_name)
        except (OperationalError, DBAPIError) as e:
            log.error("Counter %s increment failed: %s", counter_name, e)
            raise TransientStorageError(f"Could not allocate the next {counter_name} value") from e
        log.debug("Counter %s -> %s", counter_name, value)
        return value

    def _upsert(self, insert, counter_name: str) -> int:
        stmt = (
            insert(Counter)
            .values(name=counter_name, value=1)
            .on_conflict_do_update(
                index_elements=[Counter.name],
                set_={"value": Counter.value + 1},
            )
            .returning(Counter.value)
        )
        return self.session.execute(stmt).scalar_one()

    def _update_then_read(self, counter_name: str) -> int:
        # The UPDATE takes the row lock; the SELECT runs under it in the same transaction.
        bumped = self.session.execute(
            update(Counter).where(Counter.name == counter_name).values(value=Counter.value + 1)
        ).rowcount
        if not bumped:
            try:
                with self.session.begin_nested():
                    self.session.add(Counter(name=counter_name, value=1))
                return 1
            except IntegrityError:
                # Someone else created it first; fall back to the increment.
                self.session.execute(
                    update(Counter).where(Counter.name == counter_name).values(value=Counter.value + 1)
                )
        return self.session.execute(
            select(Counter.value).where(Counter.name == counter_name)
        ).scalar_one()
