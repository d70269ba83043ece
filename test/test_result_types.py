"""
Tests für die Result-Types (Removal/Rebuild Reports).
"""

from parametric.result_types import OperationResult, RebuildResult, RemovalResult, ResultStatus


class TestOperationResult:

    def test_success(self):
        result = OperationResult.success(42, "done")

        assert result.is_success
        assert not result.is_error
        assert result.to_report_dict() == {"status": "SUCCESS", "message": "done", "value_type": "int"}

    def test_empty_is_not_error(self):
        result = OperationResult.empty(reason="cache valid")

        assert result.is_empty
        assert not result.is_error
        assert not result.is_success
        assert result.details == {"reason": "cache valid"}

    def test_error_captures_exception(self):
        result = OperationResult.error("failed", exception=ValueError("bad"))

        assert result.is_error
        assert result.details["exception_type"] == "ValueError"
        assert result.details["exception_message"] == "bad"

    def test_warning_with_value_counts_as_success(self):
        result = OperationResult.warning([1], "partial", warnings=["x"], failed_items=[2])

        assert result.is_success
        assert result.has_warnings
        assert result.has_failed_items

    def test_log_returns_self(self, log_messages):
        result = OperationResult.warning(None, "partial", warnings=["one"])

        assert result.log("Ctx") is result
        assert ("WARNING", "[Ctx] partial") in log_messages
        assert ("WARNING", "[Ctx]   - one") in log_messages

    def test_repr(self):
        result = OperationResult.warning(None, "partial", failed_items=[1, 2])

        assert repr(result) == "OperationResult(WARNING, message='partial', warnings=0, failed=2)"


class TestRemovalResult:

    def test_single_removal(self):
        result = RemovalResult.from_removal("a", ["a"])

        assert result.status == ResultStatus.SUCCESS
        assert not result.is_batch
        assert result.message == "Removed 'a'"

    def test_cascade_removal(self):
        result = RemovalResult.from_removal("a", ["c", "b", "a"], cascade=True)

        assert result.is_batch
        assert result.value == ["c", "b", "a"]
        report = result.to_report_dict()
        assert report["removed_ids"] == ["c", "b", "a"]
        assert report["cascade"] is True


class TestRebuildResult:

    def test_empty(self):
        result = RebuildResult.from_rebuild([], [], [])

        assert result.status == ResultStatus.EMPTY

    def test_success(self):
        result = RebuildResult.from_rebuild(["a", "b"], [], [])

        assert result.status == ResultStatus.SUCCESS
        assert result.value == ["a", "b"]

    def test_partial_failure(self):
        result = RebuildResult.from_rebuild(["a"], ["b"], ["c"], {"b": "boom"})

        assert result.status == ResultStatus.WARNING
        assert result.failed_items == ["b"]
        assert result.warnings == ["b: boom"]
        report = result.to_report_dict()
        assert report["failed_ids"] == ["b"]
        assert report["skipped_ids"] == ["c"]
        assert report["evaluated"] == 1

    def test_only_skipped_is_not_empty(self):
        result = RebuildResult.from_rebuild([], ["a"], ["b"])

        assert result.status == ResultStatus.WARNING
        assert not result.is_success
