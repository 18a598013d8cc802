#!/usr/bin/env python3

# Standard Library
import os
import sys
from decimal import Decimal
from fractions import Fraction

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from weavelib.core import utils
from weavelib.core.errors import EncodingError

#============================================

def test_parse_timecode() -> None:
	assert utils.parse_timecode("01:02.5") == Decimal("62.5")
	assert utils.parse_timecode("1:00:00") == Decimal(3600)
	assert utils.parse_timecode(2) == Decimal(2)
	assert utils.parse_time_ms(1.5) == 1500
	assert utils.parse_time_ms("00:00.0005") == 1
	with pytest.raises(RuntimeError):
		utils.parse_timecode(True)

#============================================

def test_seconds_text() -> None:
	assert utils.millis_to_seconds_text(1500) == "1.5"
	assert utils.millis_to_seconds_text(2000) == "2"
	assert utils.millis_to_seconds_text(1) == "0.001"
	assert utils.millis_to_seconds_text(0) == "0"

#============================================

def test_parse_fps() -> None:
	assert utils.parse_fps("30000/1001") == Fraction(30000, 1001)
	assert utils.parse_fps(25) == Fraction(25)
	assert utils.parse_fps(29.97) == Fraction("29.97")
	with pytest.raises(RuntimeError):
		utils.parse_fps(0)

#============================================

def test_scratch_names_are_unique() -> None:
	first = utils.make_scratch_name("fileList", ".txt")
	second = utils.make_scratch_name("fileList", ".txt")
	assert first != second
	assert first.startswith("fileList_")
	assert first.endswith(".txt")

#============================================

def test_command_reporter_events() -> None:
	events = []
	utils.set_quiet_mode(True)
	utils.set_command_reporter(events.append)
	utils.set_command_total(2)
	try:
		index = utils.report_command_start(["ffmpeg", "-i", "a b.mp3", "out.mp3"])
		utils.report_command_end(["ffmpeg"], index, 0, 0.5)
	finally:
		utils.set_command_total(None)
		utils.clear_command_reporter()
		utils.set_quiet_mode(False)
	assert index == 1
	assert events[0]['event'] == 'start'
	assert events[0]['command'] == "ffmpeg -i 'a b.mp3' out.mp3"
	assert events[0]['total'] == 2
	assert events[1]['returncode'] == 0
	assert utils.command_prefix(1, 2) == "[1/2]"
	assert utils.command_prefix(3, None) == "[3]"

#============================================

def test_quiet_mode_silences_log(capsys) -> None:
	utils.set_quiet_mode(True)
	try:
		assert utils.is_quiet_mode()
		utils.log_message("hidden")
	finally:
		utils.set_quiet_mode(False)
	assert not utils.is_quiet_mode()
	utils.log_message("shown")
	assert capsys.readouterr().out == "shown\n"

#============================================

def test_encoding_error_message() -> None:
	error = EncodingError("error while mixing", stage='audio.mix', exit_code=1)
	assert str(error) == "audio.mix: error while mixing (exit code 1)"
	assert isinstance(error, RuntimeError)
