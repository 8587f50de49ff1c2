"""
Unit tests for tool result truncation.
"""

from hermes_voice.tools.truncation import MAX_RESULT_CHARS, truncate_result


class TestItemTruncation:

    def test_oversized_files_cut_to_first_page(self):
        files = [f"note-{i}.md" for i in range(250)]

        outcome = truncate_result({"files": files})

        value = outcome.value
        assert outcome.truncated
        assert outcome.field == "files"
        assert value["files"] == files[:100]
        assert value["truncated"] is True
        assert value["totalItems"] == 250
        assert value["shownItems"] == 100
        assert value["currentPage"] == 1
        assert value["totalPages"] == 3
        assert "get_folder_tree" in value["truncationNotice"]

    def test_exactly_at_cap_passes_through(self):
        result = {"folders": [str(i) for i in range(100)]}

        outcome = truncate_result(result)

        assert not outcome.truncated
        assert outcome.value is result

    def test_first_oversized_field_wins(self):
        result = {
            "files": [1, 2],
            "entries": list(range(150)),
            "results": list(range(300)),
        }

        outcome = truncate_result(result)

        assert outcome.field == "entries"
        assert len(outcome.value["entries"]) == 100
        assert len(outcome.value["results"]) == 300
        assert outcome.value["totalPages"] == 2

    def test_original_result_not_mutated(self):
        result = {"results": list(range(101))}

        truncate_result(result)

        assert len(result["results"]) == 101
        assert "truncated" not in result

    def test_custom_cap(self):
        outcome = truncate_result({"files": list(range(25))}, max_items=10)

        assert outcome.value["shownItems"] == 10
        assert outcome.value["totalPages"] == 3


class TestStringTruncation:

    def test_long_string_keeps_prefix_and_notice(self):
        text = "x" * (MAX_RESULT_CHARS + 10)

        outcome = truncate_result(text)

        assert outcome.truncated
        assert outcome.value.startswith("x" * MAX_RESULT_CHARS)
        assert "[TRUNCATED" in outcome.value
        assert outcome.total_items is None

    def test_short_string_untouched(self):
        outcome = truncate_result("short")

        assert outcome.value == "short"
        assert not outcome.truncated

    def test_other_shapes_untouched(self):
        assert truncate_result(None).value is None
        assert truncate_result([1] * 500).value == [1] * 500
