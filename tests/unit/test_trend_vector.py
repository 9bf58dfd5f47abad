"""
Global trend vector tests.
"""

import asyncio

import pytest

from core.models import IndexDocument, ModerationState
from exceptions import DatabaseError
from services.trend_vector import GlobalTrendManager, calculate_centroid
from tests.factories.fakes import InMemoryContentStore, StaticTrendSource
from tests.factories.model_factories import make_content


class TestCentroid:

    def test_mean_of_vectors(self):
        assert calculate_centroid([[1.0, 3.0], [3.0, 5.0]], dimensions=2) == pytest.approx([2.0, 4.0])

    def test_wrong_dimension_vectors_ignored(self):
        assert calculate_centroid([[1.0, 1.0], [9.0], None, [3.0, 3.0]], dimensions=2) == pytest.approx([2.0, 2.0])

    def test_no_valid_vectors(self):
        assert calculate_centroid([], dimensions=3) is None
        assert calculate_centroid([[1.0]], dimensions=3) is None


class TestManager:

    def test_refresh_sets_current(self):
        source = StaticTrendSource(vectors=[[0.0, 2.0], [2.0, 4.0], [4.0, 6.0]])
        manager = GlobalTrendManager(source, dimensions=2, top_n=2)
        assert manager.current is None
        asyncio.run(manager.refresh())
        assert manager.current == pytest.approx([1.0, 3.0])
        assert source.limits == [2]

    def test_current_is_a_copy(self):
        manager = GlobalTrendManager(StaticTrendSource(vectors=[[1.0]]), dimensions=1)
        asyncio.run(manager.refresh())
        manager.current.append(99.0)
        assert manager.current == [1.0]

    def test_empty_source_keeps_previous(self):
        source = StaticTrendSource(vectors=[[1.0, 1.0]])
        manager = GlobalTrendManager(source, dimensions=2)
        asyncio.run(manager.refresh())
        source.vectors = []
        asyncio.run(manager.refresh())
        assert manager.current == [1.0, 1.0]

    def test_run_survives_source_errors(self):
        source = StaticTrendSource(error=DatabaseError("down"))
        manager = GlobalTrendManager(source, dimensions=2, refresh_interval_seconds=0.01)

        async def scenario():
            stop = asyncio.Event()
            task = asyncio.create_task(manager.run(stop))
            await asyncio.sleep(0.05)
            stop.set()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())
        assert len(source.limits) >= 2
        assert manager.current is None

    def test_uses_most_favorited_published_items(self):
        store = InMemoryContentStore()
        for task_id, state, vector, favs in [
            ("1", ModerationState.PUBLISHED, [1.0, 1.0], 50),
            ("2", ModerationState.PUBLISHED, [3.0, 3.0], 40),
            ("3", ModerationState.PUBLISHED, [100.0, 100.0], 1),
            ("4", ModerationState.APPROVED, [500.0, 500.0], 999),
        ]:
            content = store.add(make_content(task_id=task_id, state=state))
            asyncio.run(store.set_index_document(task_id, IndexDocument.build(content, [], vector)))
            store.favorites[task_id] = favs

        manager = GlobalTrendManager(store, dimensions=2, top_n=2)
        asyncio.run(manager.refresh())
        assert manager.current == pytest.approx([2.0, 2.0])
