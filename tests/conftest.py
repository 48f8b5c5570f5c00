"""Shared fixtures: in-memory SQLite, gateway, manager."""

import random

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  registers kv_entries on Base
from database import Base
from core.game_manager import GameManager
from core.gateway import SqlGateway
from core.identity import StaticIdentity


class ScriptedRandom:
    """Stands in for random.Random; hands out a fixed sequence of floats."""

    def __init__(self, values):
        self.values = list(values)

    def random(self):
        if not self.values:
            raise AssertionError("ScriptedRandom ran out of values")
        return self.values.pop(0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def gateway(db):
    return SqlGateway(db, namespace="test")


@pytest.fixture
def manager(gateway):
    return GameManager(gateway, rng=random.Random(42))


def wallet(n: int) -> StaticIdentity:
    return StaticIdentity(f"0x{n:040x}", signature=f"sig-{n}")


def join_players(manager: GameManager, count: int):
    """Join *count* players with distinct wallets; returns their JoinResults."""
    return [manager.join(f"player{i}", wallet(i + 1)) for i in range(count)]
