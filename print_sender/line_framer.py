#!/usr/bin/env python3
# Print Sender (3D printer G-code streamer)
# Copyright (C) 2026 Bob Kolbasowski
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# Optional (not required by the license): If you make improvements, please consider
# contributing them back upstream (e.g., via a pull request) so others can benefit.
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Turns raw G-code lines into line-numbered protocol frames."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from print_sender.types import Frame

from .utils.constants import BOM_ARTIFACTS, COMMENT_PREFIX, LINE_NUMBER_TOKEN_PAT
from .utils.exceptions import FramingError

logger = logging.getLogger(__name__)


def strip_bom(line: str) -> str:
    for artifact in BOM_ARTIFACTS:
        if line.startswith(artifact):
            return line[len(artifact):]
    return line


def clean_command_line(line: str) -> str:
    """Strip inline comments and whitespace; empty result means nothing to send."""
    if COMMENT_PREFIX in line:
        line = line.split(COMMENT_PREFIX, 1)[0]
    return line.strip()


class LineFramer:
    """Stateful framer for one job.

    Line numbers start at ``start_number`` and advance only for lines that
    will be transmitted. Start code, body and end code of a job share one
    framer so numbering stays continuous across them. An ``N<k>`` already
    present in the source is replaced by the framer's own number.
    """

    def __init__(self, start_number: int = 1):
        if start_number < 1:
            raise FramingError(f"Line numbers start at 1, got {start_number}")
        self._next_number = start_number
        self._first_entry = True

    @property
    def last_number(self) -> int:
        """Highest line number handed out so far (0 before the first frame)."""
        return self._next_number - 1

    def frame(self, raw: str) -> Frame:
        """Frame one raw entry.

        Raises:
            FramingError: If ``raw`` is not text
        """
        if not isinstance(raw, str):
            raise FramingError(f"G-code line must be str, got {type(raw).__name__}")

        line = raw
        if self._first_entry:
            self._first_entry = False
            line = strip_bom(line)

        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            return Frame(line_number=None, payload=stripped, is_comment=True)

        text = clean_command_line(stripped)
        if not text:
            return Frame(line_number=None, payload=stripped, is_comment=True)

        # Firmware expects every line to be last + 1 after the M110 reset.
        match = LINE_NUMBER_TOKEN_PAT.match(text)
        if match:
            explicit = int(match.group(1))
            text = text[match.end():].lstrip()
            if explicit != self._next_number:
                logger.warning(f"Renumbering N{explicit} as N{self._next_number}")

        number = self._next_number
        self._next_number += 1
        payload = f"N{number} {text}" if text else f"N{number}"
        return Frame(line_number=number, payload=payload)

    def frame_all(self, lines: Iterable[str]) -> Iterator[Frame]:
        for raw in lines:
            yield self.frame(raw)


def frame_lines(lines: Iterable[str], start_number: int = 1) -> list[Frame]:
    """Frame a whole sequence, comments included, in order."""
    return list(LineFramer(start_number).frame_all(lines))
