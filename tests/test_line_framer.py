"""Tests for turning raw G-code lines into numbered frames."""

from __future__ import annotations

import pytest

from print_sender.line_framer import LineFramer, clean_command_line, frame_lines, strip_bom
from print_sender.types import Frame
from print_sender.utils.exceptions import FramingError


def _sent(frames: list[Frame]) -> list[Frame]:
    return [f for f in frames if not f.is_comment]


def test_bom_on_first_entry_is_removed_before_numbering() -> None:
    frames = frame_lines(["\ufeffG28", "G1 X10"])
    assert frames[0].payload == "N1 G28"
    assert frames[0].text == "N1 G28\n"
    assert frames[1].payload == "N2 G1 X10"


def test_latin1_bom_artifact_is_removed() -> None:
    frames = frame_lines(["\u00ef\u00bb\u00bfG28"])
    assert frames[0].payload == "N1 G28"


def test_bom_is_only_stripped_from_first_entry() -> None:
    frames = frame_lines(["G28", "\ufeffG1 X1"])
    assert "\ufeff" in frames[1].payload


def test_bom_only_first_entry_does_not_consume_a_number() -> None:
    frames = frame_lines(["\ufeff", "G28"])
    assert frames[0].is_comment
    assert _sent(frames)[0].payload == "N1 G28"


def test_comments_and_blank_lines_do_not_advance_counter() -> None:
    raw = ["; header", "G28", "", "   ", "G1 X1 ; move", ";end"]
    frames = frame_lines(raw)

    assert len(frames) == len(raw)
    sent = _sent(frames)
    assert [f.line_number for f in sent] == [1, 2]
    assert [f.payload for f in sent] == ["N1 G28", "N2 G1 X1"]
    assert all(f.line_number is None for f in frames if f.is_comment)


def test_inline_comment_only_line_is_skipped() -> None:
    frames = frame_lines(["   ; indented comment", "M104 S200;heat"])
    assert frames[0].is_comment
    assert frames[1].payload == "N1 M104 S200"


def test_explicit_line_number_is_replaced_by_counter() -> None:
    frames = frame_lines(["N5 G28", "G1 X1"])
    assert [(f.line_number, f.payload) for f in frames] == [
        (1, "N1 G28"),
        (2, "N2 G1 X1"),
    ]


def test_stale_explicit_line_number_is_renumbered() -> None:
    frames = frame_lines(["G28", "N1 G1 X1"])
    assert frames[1].line_number == 2
    assert frames[1].payload == "N2 G1 X1"


def test_matching_explicit_line_number_is_unchanged() -> None:
    frames = frame_lines(["G28", "N2 G1 X1"])
    assert frames[1].payload == "N2 G1 X1"


def test_line_numbers_are_consecutive() -> None:
    raw = ["G28", ";c", "N10 G1", "G1 X2", "", "N3 G1 X3", "M84 ; off", "N40 M107"]
    numbers = [f.line_number for f in _sent(frame_lines(raw))]
    assert numbers == [1, 2, 3, 4, 5, 6]


def test_empty_sequence_yields_no_frames() -> None:
    assert frame_lines([]) == []


def test_framer_tracks_last_number_across_sections() -> None:
    framer = LineFramer()
    assert framer.last_number == 0
    list(framer.frame_all(["M104 S200", "; body"]))
    frame = framer.frame("G28")
    assert frame.payload == "N2 G28"
    assert framer.last_number == 2


def test_non_text_entry_raises_framing_error() -> None:
    with pytest.raises(FramingError):
        LineFramer().frame(b"G28")  # type: ignore[arg-type]


def test_frame_text_keeps_existing_terminator() -> None:
    frame = Frame(line_number=1, payload="N1 G28\n")
    assert frame.text == "N1 G28\n"
    assert frame.encode() == b"N1 G28\n"


def test_helpers() -> None:
    assert strip_bom("\ufeffG1") == "G1"
    assert strip_bom("G1") == "G1"
    assert clean_command_line("  G1 X1 ; go  ") == "G1 X1"
    assert clean_command_line(";only") == ""
