"""Durable key/value slots for serialized wizard state.

The state machine only talks to the ``StateStore`` protocol. Two
implementations ship: an in-process dict (tests, single-run CLI usage) and a
SQLAlchemy-backed table for the API.
"""

from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from app.core.db.schemas.wizard import WizardSnapshot


class StateStore(Protocol):
    def load(self, key: str) -> Optional[str]: ...

    def save(self, key: str, payload: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStateStore:
    def __init__(self) -> None:
        self._slots: dict[str, str] = {}

    def load(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    def save(self, key: str, payload: str) -> None:
        self._slots[key] = payload

    def delete(self, key: str) -> None:
        self._slots.pop(key, None)


class SqlStateStore:
    """One row per key in ``wizard_snapshots``; each save overwrites it."""

    def __init__(self, session_maker: sessionmaker) -> None:
        self._session_maker = session_maker

    def load(self, key: str) -> Optional[str]:
        with self._session_maker() as session:
            row = session.execute(
                select(WizardSnapshot).where(WizardSnapshot.key == key)
            ).scalar_one_or_none()
            return row.payload if row else None

    def save(self, key: str, payload: str) -> None:
        with self._session_maker() as session:
            row = session.get(WizardSnapshot, key)
            if row is None:
                session.add(WizardSnapshot(key=key, payload=payload))
            else:
                row.payload = payload
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_maker() as session:
            row = session.get(WizardSnapshot, key)
            if row is not None:
                session.delete(row)
                session.commit()
