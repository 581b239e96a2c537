"""Tests for scenevoice.parser — line classification and the dialogue fold."""

import pytest

from scenevoice.parser import (
    BuilderState,
    DialogueParser,
    FigureStateTable,
    LineKind,
    classify_line,
    parse_lines,
    parse_script_text,
)
from scenevoice.records import FigureState

FIGURE_A = "changeFigure:modelX -id=A -motion=idle -expression=smile"


# ---------------------------------------------------------------------------
# LineClassifier
# ---------------------------------------------------------------------------


class TestClassifyLine:
    @pytest.mark.parametrize("line", ["", "   ", "\t", "\r", " \n "])
    def test_blank_is_ignorable(self, line):
        assert classify_line(line) == (LineKind.IGNORABLE, "")

    def test_figure_change_prefix(self):
        kind, content = classify_line("  changeFigure:m.json -id=A -motion=idle;  ")
        assert kind is LineKind.FIGURE_CHANGE
        assert content == "changeFigure:m.json -id=A -motion=idle;"

    def test_figure_change_wins_over_figure_id(self):
        """A changeFigure line that also mentions -figureId= is still a figure change."""
        kind, _ = classify_line("changeFigure:m -id=A -motion=x -figureId=A")
        assert kind is LineKind.FIGURE_CHANGE

    def test_dialogue_substring(self):
        kind, _ = classify_line("Alice:Hello -figureId=A;")
        assert kind is LineKind.DIALOGUE

    def test_prefix_is_case_sensitive(self):
        assert classify_line("changefigure:m -id=A -motion=x")[0] is LineKind.IGNORABLE
        assert classify_line("Alice:Hi -figureid=A")[0] is LineKind.IGNORABLE

    def test_other_directives_are_ignorable(self):
        assert classify_line("changeBg:room.png -next;")[0] is LineKind.IGNORABLE
        assert classify_line("; a comment")[0] is LineKind.IGNORABLE


# ---------------------------------------------------------------------------
# FigureStateTable
# ---------------------------------------------------------------------------


class TestFigureStateTable:
    def test_starts_empty(self):
        table = FigureStateTable()
        assert len(table) == 0
        assert table.get("A") is None
        assert "A" not in table

    def test_last_write_wins(self):
        table = FigureStateTable()
        table.put(FigureState(id="A", motion="idle"))
        table.put(FigureState(id="A", motion="wave"))
        assert len(table) == 1
        assert table.get("A").motion == "wave"

    def test_snapshot_is_a_copy(self):
        table = FigureStateTable()
        table.put(FigureState(id="A", motion="idle"))
        snap = table.snapshot()
        snap["A"].motion = "changed"
        assert table.get("A").motion == "idle"


# ---------------------------------------------------------------------------
# Figure-change directives
# ---------------------------------------------------------------------------


class TestFigureChange:
    def test_populates_table_without_output(self):
        parser = parse_lines([FIGURE_A])
        assert parser.records == []
        state = parser.table.get("A")
        assert state == FigureState(
            id="A", model="modelX", motion="idle", expression="smile", step=0
        )

    def test_without_motion_or_expression_is_dropped(self):
        parser = parse_lines(["changeFigure:modelX -id=A"])
        assert "A" not in parser.table

    def test_expression_alone_is_enough(self):
        parser = parse_lines(["changeFigure:modelX -id=A -expression=sad"])
        assert parser.table.get("A").expression == "sad"
        assert parser.table.get("A").motion == ""

    def test_without_id_has_no_effect(self):
        parser = parse_lines(["changeFigure:modelX -motion=idle -expression=smile"])
        assert len(parser.table) == 0

    def test_trailing_semicolon_stripped(self):
        parser = parse_lines(["changeFigure:modelX -id=A -motion=idle;"])
        assert parser.table.get("A").motion == "idle"

    def test_unknown_tokens_ignored(self):
        parser = parse_lines(
            ['changeFigure:modelX -left -id=A -transform={"x":1} -motion=idle -next']
        )
        state = parser.table.get("A")
        assert (state.model, state.motion) == ("modelX", "idle")

    def test_later_change_replaces_whole_state(self):
        parser = parse_lines(
            [
                FIGURE_A,
                "changeFigure:modelY -id=A -motion=wave",
            ]
        )
        state = parser.table.get("A")
        assert state.model == "modelY"
        assert state.motion == "wave"
        assert state.expression == ""
        assert state.step == 1


# ---------------------------------------------------------------------------
# Dialogue lines
# ---------------------------------------------------------------------------


class TestDialogue:
    def test_basic_merge(self):
        records = parse_lines([FIGURE_A, "Alice:Hello -figureId=A"]).records
        assert len(records) == 1
        assert records[0].to_dict() == {
            "id": "A",
            "name": "Alice",
            "text": "Hello",
            "step": 1,
            "motion": "idle",
            "expression": "smile",
            "model": "modelX",
            "emotion": "",
        }

    def test_unknown_figure_produces_nothing(self):
        parser = parse_lines(["Bob:Hi -figureId=Z"])
        assert parser.records == []
        assert "Z" not in parser.table

    def test_dialogue_before_figure_change_is_dropped(self):
        records = parse_lines(["Alice:Early -figureId=A", FIGURE_A]).records
        assert records == []

    def test_latest_figure_change_is_visible(self):
        records = parse_lines(
            [
                FIGURE_A,
                "changeFigure:modelX -id=A -motion=wave -expression=angry",
                "Alice:Hey -figureId=A",
            ]
        ).records
        assert (records[0].motion, records[0].expression) == ("wave", "angry")

    def test_no_colon_inherits_previous_name(self):
        records = parse_lines(
            [
                FIGURE_A,
                "Alice:Hello -figureId=A",
                "Hi there -figureId=A",
            ]
        ).records
        assert records[1].name == "Alice"
        assert records[1].text == "Hi there"

    def test_no_colon_after_fresh_figure_change_has_empty_name(self):
        records = parse_lines(
            [
                FIGURE_A,
                "Alice:Hello -figureId=A",
                "changeFigure:modelX -id=A -motion=wave",
                "Again -figureId=A",
            ]
        ).records
        assert records[1].name == ""
        assert records[1].text == "Again"

    def test_split_on_first_colon_only(self):
        records = parse_lines([FIGURE_A, "Alice:it is 12:30 -figureId=A"]).records
        assert records[0].name == "Alice"
        assert records[0].text == "it is 12:30"

    def test_two_lines_same_id_are_two_records(self):
        records = parse_lines(
            [
                FIGURE_A,
                "Alice:One -figureId=A",
                "Alice:Two -figureId=A",
            ]
        ).records
        assert [(r.text, r.step) for r in records] == [("One", 1), ("Two", 2)]

    def test_earlier_record_not_mutated_by_later_lines(self):
        parser = parse_lines(
            [
                FIGURE_A,
                "Alice:One -figureId=A",
                "Two -figureId=A",
            ]
        )
        assert parser.records[0].text == "One"
        assert parser.table.get("A").text == "Two"
        assert parser.table.get("A").step == 2

    def test_single_token_is_dropped(self):
        parser = parse_lines([FIGURE_A, "-figureId=A"])
        assert parser.records == []

    def test_figure_id_must_be_a_token_prefix(self):
        parser = parse_lines([FIGURE_A, "Alice:Hi x-figureId=A"])
        assert parser.records == []

    def test_trailing_semicolon_and_flags(self):
        records = parse_lines([FIGURE_A, "Alice:Hello -next -figureId=A;"]).records
        assert records[0].id == "A"
        assert records[0].text == "Hello"

    def test_dash_inside_text_kept(self):
        records = parse_lines([FIGURE_A, "Alice:Wait - what -figureId=A"]).records
        assert records[0].text == "Wait - what"

    def test_text_ends_at_first_dash_letter_token(self):
        # "-think" reads as an attribute, so the rest of the sentence is lost
        records = parse_lines([FIGURE_A, "Alice:I -think so -figureId=A"]).records
        assert records[0].name == "Alice"
        assert records[0].text == "I"

    def test_records_per_figure(self):
        records = parse_lines(
            [
                FIGURE_A,
                "changeFigure:modelB -id=B -expression=calm",
                "Alice:Hi -figureId=A",
                "Bob:Yo -figureId=B",
            ]
        ).records
        assert [(r.id, r.name, r.model) for r in records] == [
            ("A", "Alice", "modelX"),
            ("B", "Bob", "modelB"),
        ]


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


class TestDriver:
    def test_blank_lines_consume_steps(self):
        records = parse_lines(["", FIGURE_A, "   ", "Alice:Hi -figureId=A"]).records
        assert records[0].step == 3

    def test_blank_lines_have_no_effect(self):
        parser = parse_lines(["", " ", "\t"])
        assert parser.records == []
        assert len(parser.table) == 0

    def test_state_transitions(self):
        parser = DialogueParser()
        assert parser.state is BuilderState.START
        parser.feed("", 0)
        assert parser.state is BuilderState.STREAMING
        parser.finish()
        assert parser.state is BuilderState.DONE

    def test_feed_after_finish_raises(self):
        parser = DialogueParser()
        parser.finish()
        with pytest.raises(RuntimeError, match="already finished"):
            parser.feed(FIGURE_A, 0)

    def test_instances_do_not_share_state(self):
        first = parse_lines([FIGURE_A])
        second = DialogueParser()
        second.feed("Alice:Hi -figureId=A", 0)
        assert "A" in first.table
        assert second.records == []

    def test_parse_script_text_splits_on_newline(self):
        text = FIGURE_A + "\r\n\r\nAlice:Hello -figureId=A;\r\n"
        records = parse_script_text(text)
        assert len(records) == 1
        assert records[0].step == 2
        assert records[0].text == "Hello"
