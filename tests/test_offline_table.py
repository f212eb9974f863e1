import json

import pytest

from offline_sync.core.clock import SequenceGenerator
from offline_sync.core.exceptions import EntityNotFoundError
from offline_sync.crud.offline_table import OfflineTable
from offline_sync.crud.operations_queue import OperationsQueue
from offline_sync.models.operation import OperationKind, OperationState

from conftest import TodoItem


async def collect(iterator):
    return [item async for item in iterator]


@pytest.fixture(name="table")
def table_fixture(session, sequence):
    return OfflineTable(session, TodoItem, sequence=sequence)


@pytest.fixture(name="queue")
def queue_fixture(session, sequence):
    return OperationsQueue(session, sequence=sequence)


class TestAdd:
    @pytest.mark.asyncio
    async def test_add_writes_row_and_queues_operation(self, table, queue):
        result = await table.add(TodoItem(id="1", title="buy milk"))

        assert result.is_successful
        assert result.item_id == "1"
        assert result.value.title == "buy milk"
        assert (await table.get("1")).title == "buy milk"

        operations = await collect(queue.iterate_all_ordered())
        assert len(operations) == 1
        operation = operations[0]
        assert operation.id == result.operation_id
        assert operation.kind == OperationKind.ADD
        assert operation.state == OperationState.PENDING
        assert operation.item_id == "1"
        assert operation.table_name == "todo_items"
        assert operation.serialized_item == ""

    @pytest.mark.asyncio
    async def test_add_duplicate_is_rejected_without_operation(self, table, queue):
        await table.add(TodoItem(id="1", title="first"))

        result = await table.add(TodoItem(id="1", title="second"))

        assert not result.is_successful
        assert "already exists" in result.error_message
        assert (await table.get("1")).title == "first"
        assert await queue.count_pending() == 1

    @pytest.mark.asyncio
    async def test_add_range_continues_past_bad_item(self, table, queue):
        results = await table.add_range([
            TodoItem(id="1", title="one"),
            TodoItem(id="1", title="duplicate"),
            TodoItem(id="2", title="two"),
        ])

        assert [r.is_successful for r in results] == [True, False, True]
        assert await table.count() == 2
        assert [op.item_id for op in await collect(queue.iterate_pending())] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_add_records_entity_version(self, table, queue):
        await table.add(TodoItem(id="1", title="versioned", version=4))

        assert (await queue.get_next()).version == 4


class TestReplace:
    @pytest.mark.asyncio
    async def test_replace_stores_prior_snapshot(self, table, queue):
        await table.add(TodoItem(id="1", title="draft"))

        result = await table.replace(TodoItem(id="1", title="final", done=True))

        assert result.is_successful
        stored = await table.get("1")
        assert stored.title == "final"
        assert stored.done is True

        operations = await collect(queue.iterate_all_ordered())
        assert [op.kind for op in operations] == [OperationKind.ADD, OperationKind.REPLACE]
        snapshot = json.loads(operations[1].serialized_item)
        assert snapshot["title"] == "draft"
        assert snapshot["done"] is False

    @pytest.mark.asyncio
    async def test_replace_loaded_instance(self, table, queue):
        await table.add(TodoItem(id="1", title="draft"))
        item = await table.get("1")
        item.title = "edited"

        result = await table.replace(item)

        assert result.is_successful
        assert (await table.get("1")).title == "edited"
        replace_op = (await collect(queue.iterate_all_ordered()))[-1]
        assert json.loads(replace_op.serialized_item)["title"] == "draft"

    @pytest.mark.asyncio
    async def test_replace_missing_fails(self, table, queue):
        result = await table.replace(TodoItem(id="404", title="ghost"))

        assert not result.is_successful
        assert result.item_id == "404"
        assert await queue.count_pending() == 0


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_deletes_row_and_queues_delete(self, table, queue):
        await table.add(TodoItem(id="1", title="short lived"))

        result = await table.remove("1")

        assert result.is_successful
        assert result.value is None
        with pytest.raises(EntityNotFoundError):
            await table.get("1")

        delete_op = (await collect(queue.iterate_all_ordered()))[-1]
        assert delete_op.kind == OperationKind.DELETE
        assert json.loads(delete_op.serialized_item)["title"] == "short lived"

    @pytest.mark.asyncio
    async def test_remove_missing_fails(self, table):
        result = await table.remove("missing")

        assert not result.is_successful
        assert "not found" in result.error_message

    @pytest.mark.asyncio
    async def test_remove_range(self, table):
        await table.add_range([TodoItem(id=str(i), title=f"item {i}") for i in range(3)])

        results = await table.remove_range(["0", "2"])

        assert all(r.is_successful for r in results)
        assert [item.id for item in await table.list()] == ["1"]


class TestJournal:
    @pytest.mark.asyncio
    async def test_one_operation_per_mutation_in_creation_order(self, table, queue):
        await table.add(TodoItem(id="a", title="a"))
        await table.add(TodoItem(id="b", title="b"))
        await table.replace(TodoItem(id="a", title="a2"))
        await table.remove("b")

        operations = await collect(queue.iterate_pending())

        assert [(op.kind, op.item_id) for op in operations] == [
            (OperationKind.ADD, "a"),
            (OperationKind.ADD, "b"),
            (OperationKind.REPLACE, "a"),
            (OperationKind.DELETE, "b"),
        ]
        sequences = [op.sequence for op in operations]
        assert sequences == sorted(set(sequences))

    @pytest.mark.asyncio
    async def test_custom_table_name(self, session, sequence, queue):
        table = OfflineTable(session, TodoItem, table_name="todos", sequence=sequence)

        await table.add(TodoItem(id="1", title="named"))

        assert (await queue.get_next()).table_name == "todos"

    @pytest.mark.asyncio
    async def test_table_queue_fast_path(self, table):
        assert await table.queue.count_pending() == 0

        await table.add(TodoItem(id="1", title="counted"))

        assert table.queue.pending_operations == 1

    @pytest.mark.asyncio
    async def test_independent_generators_on_one_database(self, session, clock):
        # Neither component shares a generator and the clock never moves
        table = OfflineTable(session, TodoItem, sequence=SequenceGenerator(clock))
        queue = OperationsQueue(session, sequence=SequenceGenerator(clock))

        await table.add(TodoItem(id="1", title="first"))
        await queue.enqueue(OperationKind.ADD, "todo_items", "external")
        result = await table.add(TodoItem(id="2", title="second"))

        assert result.is_successful
        operations = await collect(queue.iterate_all_ordered())
        assert [op.item_id for op in operations] == ["1", "external", "2"]
        assert [op.sequence - operations[0].sequence for op in operations] == [0, 1, 2]
