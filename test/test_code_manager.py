"""
CodeManager Tests

Lazy Neuberechnung, Stale-Propagation, Undo/Redo/Rollback und Rebuild.

Run: pytest test/test_code_manager.py -v
"""

import numpy as np
import pytest

from config.feature_flags import set_flag
from parametric import CodeManager
from parametric.errors import (
    DependentFeatureError,
    HistoryError,
    InvalidParentError,
    NotFoundError,
    OperationError,
    UnknownOperationError,
)
from parametric.features import FeatureRef
from parametric.geometry import make_base_box, register_operation, unregister_operation
from parametric.result_types import ResultStatus


@pytest.fixture
def eval_counter():
    """Registriert 'countedBox' (wie makeBaseBox) und zählt Auswertungen pro Argument-Tupel."""
    calls = []

    @register_operation("countedBox")
    def _counted_box(parent, args):
        calls.append(args)
        return make_base_box(parent, args)

    yield calls
    unregister_operation("countedBox")


class TestAddAndEvaluate:
    """Grundszenarien: Box, Box auf Box."""

    def test_single_box(self, manager):
        ref = manager.add_feature("makeBaseBox", None, [10, 10, 10])

        result = manager.get_result()

        assert isinstance(ref, FeatureRef)
        assert ref.history_id == manager.history_id
        assert result.is_box
        assert result.feature_id == ref.feature_id
        np.testing.assert_allclose(result.bbox_min, [0, 0, 0])
        np.testing.assert_allclose(result.bbox_max, [10, 10, 10])
        assert result.volume == pytest.approx(1000.0)

    def test_box_on_box(self, manager):
        r1 = manager.add_feature("makeBaseBox", None, [10, 10, 10])
        r2 = manager.add_feature("makeBaseBox", r1, [5, 5, 5])

        result = manager.get_result()

        assert result.feature_id == r2.feature_id
        assert len(result.solids) == 2
        top = result.solids[-1]
        np.testing.assert_allclose(top.bbox_min, [2.5, 2.5, 10])
        np.testing.assert_allclose(top.bbox_max, [7.5, 7.5, 15])
        np.testing.assert_allclose(result.dimensions, [10, 10, 15])
        assert result.volume == pytest.approx(1125.0)

        # Ergebnis des Parents unverändert abrufbar
        assert manager.get_result(r1).volume == pytest.approx(1000.0)

    def test_add_with_unknown_parent(self, manager):
        manager.add_feature("makeBaseBox", None, [1, 1, 1])

        with pytest.raises(InvalidParentError):
            manager.add_feature("makeBaseBox", "missing", [1, 1, 1])

        assert len(manager) == 1

    def test_add_with_parent_from_other_manager(self, manager):
        other = CodeManager()
        foreign = other.add_feature("makeBaseBox", None, [1, 1, 1])

        with pytest.raises(InvalidParentError):
            manager.add_feature("makeBaseBox", foreign, [1, 1, 1])

        assert len(manager) == 0

    def test_get_result_empty_history(self, manager):
        with pytest.raises(NotFoundError):
            manager.get_result()

    def test_get_result_unknown_ref(self, manager):
        manager.add_feature("makeBaseBox", None, [1, 1, 1])

        with pytest.raises(NotFoundError):
            manager.get_result("missing")

    def test_zero_dimension_fails_on_evaluation(self, manager):
        ref = manager.add_feature("makeBaseBox", None, [0, 10, 10])

        with pytest.raises(OperationError) as exc_info:
            manager.get_result()

        err = exc_info.value
        assert err.feature_id == ref.feature_id
        assert err.operation_name == "makeBaseBox"
        assert isinstance(err.__cause__, ValueError)
        assert ref in manager
        assert manager.is_stale(ref)
        assert manager.last_error(ref) is err

    def test_unknown_operation_fails_on_evaluation(self, manager):
        ref = manager.add_feature("frobnicate", None, [1])

        with pytest.raises(OperationError) as exc_info:
            manager.get_result(ref)

        assert isinstance(exc_info.value.cause, UnknownOperationError)
        assert exc_info.value.cause.operation_name == "frobnicate"

    def test_failure_stops_walk_at_failing_ancestor(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [-1, 1, 1])
        c = manager.add_feature("makeBaseBox", b, [1, 1, 1])

        with pytest.raises(OperationError) as exc_info:
            manager.get_result(c)

        assert exc_info.value.feature_id == b.feature_id
        assert not manager.is_stale(a)
        assert manager.is_stale(c)
        assert manager.last_error(c) is None


class TestLazyStaleness:
    """add_feature wertet nicht aus; Edits machen nur Nachfahren stale."""

    def test_add_does_not_evaluate(self, manager, eval_counter):
        ref = manager.add_feature("countedBox", None, [1, 1, 1])
        manager.add_feature("countedBox", ref, [2, 2, 2])

        assert eval_counter == []
        assert manager.stale_ids() == [f.id for f in manager.features()]

    def test_results_are_cached(self, manager, eval_counter):
        manager.add_feature("countedBox", None, [1, 1, 1])

        first = manager.get_result()
        second = manager.get_result()

        assert first is second
        assert len(eval_counter) == 1
        assert manager.stale_ids() == []

    def test_chain_evaluated_from_nearest_clean_ancestor(self, manager, eval_counter):
        a = manager.add_feature("countedBox", None, [1, 1, 1])
        manager.get_result(a)
        b = manager.add_feature("countedBox", a, [2, 2, 2])
        c = manager.add_feature("countedBox", b, [3, 3, 3])

        manager.get_result(c)

        assert eval_counter == [(1, 1, 1), (2, 2, 2), (3, 3, 3)]
        assert not manager.is_stale(b)

    def test_edit_marks_descendants_not_predecessors(self, manager, eval_counter):
        a = manager.add_feature("countedBox", None, [1, 1, 1])
        b = manager.add_feature("countedBox", a, [2, 2, 2])
        c = manager.add_feature("countedBox", b, [3, 3, 3])
        sibling = manager.add_feature("countedBox", a, [4, 4, 4])
        manager.rebuild()
        eval_counter.clear()

        manager.edit_feature(b, [5, 5, 5])

        assert not manager.is_stale(a)
        assert manager.is_stale(b)
        assert manager.is_stale(c)
        assert not manager.is_stale(sibling)

        result = manager.get_result(c)
        assert eval_counter == [(5, 5, 5), (3, 3, 3)]
        assert manager.get_feature(b).arguments == (5, 5, 5)
        assert result.solids[1].volume == pytest.approx(125.0)

    def test_edit_keeps_id_and_position(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [1, 1, 1])

        edited = manager.edit_feature(a, [2, 2, 2])

        assert edited == a
        assert [f.id for f in manager.features()] == [a.feature_id, b.feature_id]

    def test_edit_fixes_failed_feature(self, manager):
        ref = manager.add_feature("makeBaseBox", None, [0, 1, 1])
        with pytest.raises(OperationError):
            manager.get_result()

        manager.edit_feature(ref, [1, 1, 1])

        assert manager.last_error(ref) is None
        assert manager.get_result().volume == pytest.approx(1.0)


class TestRemove:
    """Entfernen über den CodeManager."""

    def test_remove_with_dependents_requires_cascade(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [1, 1, 1])

        with pytest.raises(DependentFeatureError):
            manager.remove(a)

        assert len(manager) == 2
        assert a in manager and b in manager

    def test_cascade_remove(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [1, 1, 1])
        c = manager.add_feature("makeBaseBox", b, [1, 1, 1])
        manager.rebuild()

        result = manager.remove(a, cascade=True)

        assert result.removed_ids == [c.feature_id, b.feature_id, a.feature_id]
        assert len(manager) == 0
        with pytest.raises(NotFoundError):
            manager.get_result(b)
        assert manager.get_statistics()["cached_results"] == 0

    def test_remove_leaf_keeps_parent_cache(self, manager, eval_counter):
        a = manager.add_feature("countedBox", None, [1, 1, 1])
        b = manager.add_feature("countedBox", a, [1, 1, 1])
        manager.get_result(b)
        eval_counter.clear()

        manager.remove(b)

        assert manager.get_result().feature_id == a.feature_id
        assert eval_counter == []


class TestUndoRedo:
    """Undo, Redo und Rollback."""

    def test_undo_empty_raises(self, manager):
        with pytest.raises(HistoryError):
            manager.undo()

    def test_redo_empty_raises(self, manager):
        manager.add_feature("makeBaseBox", None, [1, 1, 1])

        with pytest.raises(HistoryError):
            manager.redo()

    def test_undo_redo_order(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [2, 2, 2])
        c = manager.add_feature("makeBaseBox", b, [3, 3, 3])

        assert manager.undo().id == c.feature_id
        assert manager.undo().id == b.feature_id
        assert manager.head == a
        assert manager.can_redo

        assert manager.redo() == b
        assert manager.redo() == c
        assert not manager.can_redo
        assert [f.id for f in manager.features()] == [a.feature_id, b.feature_id, c.feature_id]

    def test_redo_restores_stale(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [2, 2, 2])
        before = manager.get_result().volume

        manager.undo()
        manager.redo()

        assert manager.is_stale(b)
        assert manager.get_result().volume == pytest.approx(before)

    def test_add_clears_redo(self, manager):
        manager.add_feature("makeBaseBox", None, [1, 1, 1])
        manager.add_feature("makeBaseBox", None, [2, 2, 2])
        manager.undo()

        manager.add_feature("makeBaseBox", None, [3, 3, 3])

        assert not manager.can_redo
        with pytest.raises(HistoryError):
            manager.redo()

    def test_rollback_round_trip(self, manager):
        a = manager.add_feature("makeBaseBox", None, [10, 10, 10])
        b = manager.add_feature("makeBaseBox", a, [5, 5, 5])
        c = manager.add_feature("makeSphere", b, [1])
        original = manager.get_result().to_dict()

        removed = manager.rollback_to(a)

        assert [f.id for f in removed] == [b.feature_id, c.feature_id]
        assert manager.head == a
        assert not manager.is_stale(a)

        assert manager.redo() == b
        assert manager.redo() == c
        assert manager.get_result().to_dict() == original

    def test_rollback_to_head_is_noop(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])

        assert manager.rollback_to(a) == []
        assert not manager.can_redo

    def test_rollback_to_unknown_raises(self, manager):
        manager.add_feature("makeBaseBox", None, [1, 1, 1])

        with pytest.raises(NotFoundError):
            manager.rollback_to("missing")


class TestRebuild:
    """rebuild() sammelt Fehler statt zu werfen."""

    def test_rebuild_nothing_to_do(self, manager):
        result = manager.rebuild()

        assert result.status == ResultStatus.EMPTY
        assert result.is_empty

    def test_rebuild_success(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("translate", a, [1, 0, 0])

        result = manager.rebuild()

        assert result.status == ResultStatus.SUCCESS
        assert result.evaluated_ids == [a.feature_id, b.feature_id]
        assert manager.stale_ids() == []

    def test_rebuild_reports_failed_and_skipped(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [0, 1, 1])
        c = manager.add_feature("scale", b, [2])
        d = manager.add_feature("makeCylinder", None, [1, 2])

        result = manager.rebuild()

        assert result.status == ResultStatus.WARNING
        assert result.evaluated_ids == [a.feature_id, d.feature_id]
        assert result.failed_items == [b.feature_id]
        assert result.skipped_ids == [c.feature_id]
        assert "must be positive" in result.errors[b.feature_id]
        assert c.feature_id not in result.errors
        assert manager.stale_ids() == [b.feature_id, c.feature_id]

    def test_rebuild_after_fix(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        b = manager.add_feature("makeBaseBox", a, [0, 1, 1])
        c = manager.add_feature("scale", b, [2])
        manager.rebuild()

        manager.edit_feature(b, [1, 1, 1])
        result = manager.rebuild()

        assert result.status == ResultStatus.SUCCESS
        assert result.evaluated_ids == [b.feature_id, c.feature_id]
        assert manager.get_result(c).volume == pytest.approx(16.0)


class TestLoggingAndStats:

    def test_debug_logging_flag(self, manager, log_messages):
        manager.add_feature("makeBaseBox", None, [1, 1, 1])
        manager.get_result()
        assert not any("[EVAL]" in msg for _, msg in log_messages)

        set_flag("history_debug_logging", True)
        manager.add_feature("makeBaseBox", None, [2, 2, 2])
        manager.get_result()

        assert any(level == "DEBUG" and "[EVAL]" in msg for level, msg in log_messages)

    def test_add_feature_logs_info(self, manager, log_messages):
        ref = manager.add_feature("makeBaseBox", None, [1, 1, 1])

        assert any(level == "INFO" and ref.feature_id in msg for level, msg in log_messages)

    def test_statistics(self, manager):
        a = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        manager.add_feature("makeBaseBox", a, [1, 1, 1])
        manager.get_result(a)

        stats = manager.get_statistics()

        assert stats["total_features"] == 2
        assert stats["total_dependencies"] == 1
        assert stats["root_features"] == 1
        assert stats["dirty_features"] == 1
        assert stats["cached_results"] == 1
        assert stats["redo_depth"] == 0


class TestRollbackReplay:

    def test_rollback_then_replay_reproduces_history(self, manager):
        steps = [("makeBaseBox", [10, 10, 10]), ("makeCylinder", [2, 4]), ("scale", [2])]
        root = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        parent = root
        for name, args in steps:
            parent = manager.add_feature(name, parent, args)
        original = [f for f in manager.features()]
        expected = manager.get_result().to_dict()

        manager.rollback_to(root)
        parent = root
        for name, args in steps:
            parent = manager.add_feature(name, parent, args)
        replayed = [f for f in manager.features()]

        assert len(replayed) == len(original)
        assert all(a.same_definition(b) for a, b in zip(original, replayed))
        assert {f.id for f in replayed[1:]}.isdisjoint(f.id for f in original[1:])
        result = manager.get_result().to_dict()
        assert result["bbox_max"] == expected["bbox_max"]
        assert result["volume"] == expected["volume"]


@pytest.fixture
def ref_operation():
    """'unitBox': Einheitswürfel, Argumente (z.B. Referenzen) werden ignoriert."""
    register_operation("unitBox")(lambda parent, args: make_base_box(parent, (1, 1, 1)))
    yield "unitBox"
    unregister_operation("unitBox")


class TestArgumentReferences:
    """Features, die andere Features über Argumente referenzieren."""

    def test_remove_referenced_feature_requires_cascade(self, manager):
        r1 = manager.add_feature("makeBaseBox", None, [10, 10, 10])
        r2 = manager.add_feature("custom", None, [5, 5, r1])

        with pytest.raises(DependentFeatureError) as exc_info:
            manager.remove(r1)

        assert exc_info.value.dependents == [r2.feature_id]
        assert manager.get_feature(manager.get_feature(r2).arguments[2]).id == r1.feature_id

    def test_cascade_removes_referencing_feature(self, manager):
        r1 = manager.add_feature("makeBaseBox", None, [10, 10, 10])
        r2 = manager.add_feature("custom", None, [5, 5, r1])

        result = manager.remove(r1, cascade=True)

        assert result.removed_ids == [r2.feature_id, r1.feature_id]
        assert len(manager) == 0
        assert manager.get_statistics()["total_features"] == 0

    def test_edit_marks_referencing_feature_stale(self, manager, ref_operation):
        r1 = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        r2 = manager.add_feature("makeSphere", None, [1])
        r3 = manager.add_feature(ref_operation, None, [r1])
        manager.rebuild()
        assert manager.stale_ids() == []

        manager.edit_feature(r1, [2, 2, 2])

        assert manager.is_stale(r3)
        assert not manager.is_stale(r2)

    def test_edit_cannot_reference_later_feature(self, manager):
        r1 = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        r2 = manager.add_feature("makeBaseBox", None, [2, 2, 2])

        with pytest.raises(InvalidParentError):
            manager.edit_feature(r1, [r2])

        assert manager.get_feature(r1).arguments == (1, 1, 1)

    def test_redo_keeps_reference_tracking(self, manager):
        r1 = manager.add_feature("makeBaseBox", None, [1, 1, 1])
        r2 = manager.add_feature("custom", None, [r1])
        manager.undo()
        manager.redo()

        with pytest.raises(DependentFeatureError):
            manager.remove(r1)
        assert r2 in manager
