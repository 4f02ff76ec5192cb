import dataclasses

import pytest

from percas.context import PercasContext


class _Engine:
    async def get(self, key):
        return None

    def put(self, key, value):
        pass

    def delete(self, key):
        pass

    def capacity(self):
        return 0

    def statistics(self):
        return None


def test_context_holds_engine():
    engine = _Engine()
    ctx = PercasContext(engine=engine)
    assert ctx.engine is engine


def test_context_is_frozen():
    ctx = PercasContext(engine=_Engine())
    with pytest.raises(dataclasses.FrozenInstanceError):
        ctx.engine = _Engine()


def test_contexts_with_same_engine_compare_equal():
    engine = _Engine()
    assert PercasContext(engine) == PercasContext(engine=engine)
    assert PercasContext(engine) != PercasContext(_Engine())