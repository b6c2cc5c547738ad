"""Test fixtures: fake candidate sources, judges and embedders."""

from tests.fixtures.fakes import (
    FailingSource,
    FakeEmbedder,
    FakeJudge,
    FakeVectorStore,
    FixedSource,
    ScriptedCritic,
    SlowSource,
    make_list,
)

__all__ = [
    "FailingSource",
    "FakeEmbedder",
    "FakeJudge",
    "FakeVectorStore",
    "FixedSource",
    "ScriptedCritic",
    "SlowSource",
    "make_list",
]
