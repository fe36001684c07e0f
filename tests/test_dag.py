"""
Tests for DAG (Directed Acyclic Graph) functionality.
"""

import pytest
from moraine.core.dag import DAG
from moraine.core.errors import CyclicDependencyError


class TestDAG:
    """Tests for DAG class."""

    def test_empty_dag(self):
        """Test creating an empty DAG."""
        dag = DAG()

        assert len(dag.nodes) == 0
        assert dag.topological_sort() == []

    def test_add_node(self):
        """Test adding nodes to DAG."""
        dag = DAG()

        dag.add_node("UserTable", "table")

        assert "UserTable" in dag.nodes
        assert dag.nodes["UserTable"].name == "UserTable"
        assert dag.nodes["UserTable"].entity == "table"
        assert dag.nodes["UserTable"].index == 0

    def test_add_node_twice_keeps_first(self):
        """Re-adding a node keeps its original entity and position."""
        dag = DAG()

        dag.add_node("a", 1)
        dag.add_node("b", 2)
        dag.add_node("a", 3)

        assert dag.nodes["a"].entity == 1
        assert dag.nodes["a"].index == 0
        assert len(dag.nodes) == 2

    def test_add_edge(self):
        """Test adding edges between nodes."""
        dag = DAG()

        dag.add_node("table", None)
        dag.add_node("grant", None)
        dag.add_edge("table", "grant")

        assert "table" in dag.nodes["grant"].dependencies
        assert "grant" in dag.nodes["table"].dependents

    def test_add_edge_twice(self):
        """Duplicate edges are recorded once."""
        dag = DAG()

        dag.add_node("a", None)
        dag.add_node("b", None)
        dag.add_edge("a", "b")
        dag.add_edge("a", "b")

        assert dag.get_dependencies("b") == ["a"]

    def test_add_edge_unknown_node(self):
        """Edges need both endpoints to exist."""
        dag = DAG()
        dag.add_node("a", None)

        with pytest.raises(ValueError):
            dag.add_edge("a", "missing")

    def test_topological_sort(self):
        """Test topological sorting of DAG."""
        dag = DAG()

        # Added in reverse: task3 <- task2 <- task1
        for i in (3, 2, 1):
            dag.add_node(f"task{i}", None)

        dag.add_edge("task1", "task2")
        dag.add_edge("task2", "task3")

        assert dag.topological_sort() == ["task1", "task2", "task3"]

    def test_topological_sort_breaks_ties_by_insertion(self):
        """Independent nodes keep insertion order."""
        dag = DAG()

        for name in ["c", "a", "d", "b"]:
            dag.add_node(name, None)

        assert dag.topological_sort() == ["c", "a", "d", "b"]

    def test_topological_sort_diamond(self):
        """Test topological sorting with parallel branches."""
        dag = DAG()

        #     task1
        #    /     \
        # task3   task2
        #    \     /
        #     task4
        for name in ["task4", "task3", "task2", "task1"]:
            dag.add_node(name, None)

        dag.add_edge("task1", "task2")
        dag.add_edge("task1", "task3")
        dag.add_edge("task2", "task4")
        dag.add_edge("task3", "task4")

        # task3 was added before task2, so it goes first once both are free
        assert dag.topological_sort() == ["task1", "task3", "task2", "task4"]

    def test_topological_sort_is_deterministic(self):
        """Sorting the same DAG twice gives the same order."""
        dag = DAG()
        for i in range(10):
            dag.add_node(f"n{i}", None)
        dag.add_edge("n9", "n0")
        dag.add_edge("n7", "n2")
        dag.add_edge("n0", "n2")

        assert dag.topological_sort() == dag.topological_sort()

    def test_cycle_raises(self):
        """A cycle makes sorting fail instead of dropping nodes."""
        dag = DAG()

        for i in range(1, 4):
            dag.add_node(f"task{i}", None)

        dag.add_edge("task1", "task2")
        dag.add_edge("task2", "task3")
        dag.add_edge("task3", "task1")

        with pytest.raises(CyclicDependencyError) as exc_info:
            dag.topological_sort()

        assert set(exc_info.value.cycle) == {"task1", "task2", "task3"}
        assert exc_info.value.cycle[0] == exc_info.value.cycle[-1]

    def test_cycle_detection(self):
        """Test detecting cycles in DAG."""
        dag = DAG()

        dag.add_node("a", None)
        dag.add_node("b", None)
        dag.add_edge("a", "b")
        dag.add_edge("b", "a")

        assert dag.detect_cycles() == ["a", "b", "a"]

    def test_no_cycle_detection(self):
        """Test that no cycle is detected in valid DAG."""
        dag = DAG()

        for i in range(1, 4):
            dag.add_node(f"task{i}", None)

        dag.add_edge("task1", "task2")
        dag.add_edge("task2", "task3")

        assert dag.detect_cycles() is None

    def test_get_dependencies(self):
        """Test getting dependencies of a node."""
        dag = DAG()

        for i in range(1, 4):
            dag.add_node(f"task{i}", None)

        dag.add_edge("task1", "task3")
        dag.add_edge("task2", "task3")

        assert set(dag.get_dependencies("task3")) == {"task1", "task2"}
        assert dag.get_dependencies("missing") == []

    def test_get_dependents(self):
        """Test getting dependents of a node."""
        dag = DAG()

        for i in range(1, 4):
            dag.add_node(f"task{i}", None)

        dag.add_edge("task1", "task2")
        dag.add_edge("task1", "task3")

        assert set(dag.get_dependents("task1")) == {"task2", "task3"}
