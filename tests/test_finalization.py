"""Tests for FinalizationEngine."""

from __future__ import annotations

import pytest

from contextjar.compaction.accounting import DeltaAccountant
from contextjar.compaction.finalization import (
    FinalizationEngine,
    find_last_assistant,
    make_synthetic_read,
    synthetic_call_id,
)
from contextjar.compaction.snapshots import render_read_like_output
from contextjar.models.message import ToolPart
from tests.conftest import (
    ROOT,
    file_parts,
    make_edit,
    make_message,
    make_read,
    make_tool_part,
    make_write,
    text,
    visible_parts,
)

A_PY = f"{ROOT}/src/a.py"
B_PY = f"{ROOT}/src/b.py"
NOW = 1_700_000_000_000


@pytest.fixture
def engine(estimator):
    return FinalizationEngine(estimator)


def _dump(parts):
    return [p.model_dump() for p in parts]


class TestSyntheticRead:
    def test_call_id_derived_from_relative_path(self):
        assert synthetic_call_id("src/a.py") == "context-jar-final-read-src_a_py"
        assert synthetic_call_id("dir name/x-y_z.ts") == "context-jar-final-read-dir_name_x-y_z_ts"

    def test_synthetic_part_shape(self):
        output = "\n".join(f"line {i}" for i in range(30))
        part = make_synthetic_read(A_PY, output, "src/a.py", NOW)
        assert part.tool == "read"
        assert part.state.status == "completed"
        assert part.state.input == {"filePath": A_PY}
        assert part.state.title == "src/a.py"
        assert part.state.metadata["preview"].count("\n") == 19
        assert part.state.time.start == part.state.time.end == NOW

    def test_find_last_assistant(self):
        messages = [make_message("assistant"), make_message("user"), make_message("assistant")]
        assert find_last_assistant(messages) == 2
        assert find_last_assistant([make_message("user")]) is None


class TestFinalization:
    def test_edited_file_replaced_by_single_synthetic_read(self, engine, protection, estimator):
        read = make_read(A_PY, output="<file>\n00001| old\n</file>")
        edit1 = make_edit(A_PY, "mid")
        edit2 = make_edit(A_PY, "final\ncontent")
        messages = [
            make_message("user", [text("fix a.py")]),
            make_message("assistant", [read, edit1]),
            make_message("user", [text("again")]),
            make_message("assistant", [text("done"), edit2]),
        ]
        accountant = DeltaAccountant(estimator)
        expected_before = sum(accountant.part_tokens(p) for p in (read, edit1, edit2))

        delta = engine.run(messages, protection, frozenset(), now_ms=NOW)

        (synthetic,) = file_parts(messages, A_PY)
        assert synthetic.call_id == "context-jar-final-read-src_a_py"
        assert synthetic.state.output == render_read_like_output("final\ncontent")
        assert messages[-1].parts[-1] is synthetic
        assert messages[1].parts == []
        assert delta.tokens_before == expected_before
        assert delta.tokens_after == accountant.part_tokens(synthetic)
        assert delta.read_tokens_after == delta.tokens_after
        assert delta.files_consolidated == 1

    def test_synthetic_read_attached_to_last_assistant(self, engine, protection):
        messages = [
            make_message("assistant", [make_write(A_PY, "x = 1")]),
            make_message("assistant", [text("second")]),
            make_message("user", [text("thanks")]),
        ]

        engine.run(messages, protection, frozenset(), now_ms=NOW)

        assert messages[0].parts == []
        assert isinstance(messages[1].parts[-1], ToolPart)
        assert messages[2].parts == [text("thanks")]

    def test_read_only_files_untouched(self, engine, protection):
        """Files that were only read are not wiped."""
        messages = [make_message("assistant", [make_read(A_PY), make_read(A_PY)])]
        before = _dump(visible_parts(messages))

        delta = engine.run(messages, protection, frozenset(), now_ms=NOW)

        assert _dump(visible_parts(messages)) == before
        assert delta.tokens_before == 0

    def test_one_synthetic_per_edited_file(self, engine, protection):
        messages = [
            make_message(
                "assistant",
                [make_edit(A_PY, "a1"), make_edit(B_PY, "b1"), make_edit(A_PY, "a2")],
            )
        ]

        delta = engine.run(messages, protection, frozenset(), now_ms=NOW)

        assert [p.state.output for p in visible_parts(messages)] == [
            render_read_like_output("a2"),
            render_read_like_output("b1"),
        ]
        assert delta.files_consolidated == 2

    def test_running_twice_is_stable(self, engine, protection):
        """A second run with no new operations yields the same single synthetic read."""
        messages = [make_message("assistant", [make_read(A_PY), make_edit(A_PY, "v2")])]

        engine.run(messages, protection, frozenset(), now_ms=NOW)
        first = _dump(visible_parts(messages))
        delta = engine.run(messages, protection, frozenset(), now_ms=NOW + 10)

        assert _dump(visible_parts(messages)) == first
        assert len(file_parts(messages, A_PY)) == 1
        assert delta.tokens_before == 0
        assert delta.files_consolidated == 0

    def test_non_file_tools_kept(self, engine, protection):
        bash = make_tool_part("bash", None, extra_input={"command": "pytest"}, output="ok")
        messages = [make_message("assistant", [make_edit(A_PY, "x"), bash])]

        engine.run(messages, protection, frozenset(), now_ms=NOW)

        assert messages[0].parts[0] is bash
        assert len(messages[0].parts) == 2


class TestNoAssistant:
    def test_no_assistant_is_noop(self, engine, protection):
        """Without an assistant message nothing is wiped and nothing is added."""
        messages = [make_message("user", [make_edit(A_PY, "x"), make_read(B_PY)])]
        before = _dump(visible_parts(messages))

        delta = engine.run(messages, protection, frozenset({B_PY}), now_ms=NOW)

        assert _dump(visible_parts(messages)) == before
        assert delta.tokens_before == 0
        assert delta.files_invalidated == 0


class TestInvalidation:
    def test_invalidated_files_wiped_without_replacement(self, engine, protection, estimator):
        read = make_read(B_PY)
        edit = make_edit(B_PY, "child changed this")
        messages = [make_message("assistant", [read, edit, make_edit(A_PY, "a")])]
        accountant = DeltaAccountant(estimator)
        invalid_cost = accountant.part_tokens(read) + accountant.part_tokens(edit)

        delta = engine.run(messages, protection, frozenset({B_PY}), now_ms=NOW)

        assert file_parts(messages, B_PY) == []
        assert len(file_parts(messages, A_PY)) == 1
        assert delta.files_invalidated == 1
        assert delta.files_consolidated == 1
        assert delta.invalidated_tokens_before == invalid_cost

    def test_invalidated_only_window(self, engine, protection):
        messages = [make_message("assistant", [make_read(B_PY)])]

        delta = engine.run(messages, protection, frozenset({B_PY}), now_ms=NOW)

        assert visible_parts(messages) == []
        assert delta.files_invalidated == 1
        assert delta.tokens_after == 0


class TestProtection:
    def test_protected_files_never_touched(self, engine, protection):
        config_file = f"{ROOT}/app.config.ts"
        messages = [
            make_message("assistant", [make_read(config_file), make_edit(config_file, "x")]),
        ]
        before = _dump(visible_parts(messages))

        delta = engine.run(messages, protection, frozenset({config_file}), now_ms=NOW)

        assert _dump(visible_parts(messages)) == before
        assert delta.files_invalidated == 0
        assert delta.files_consolidated == 0
