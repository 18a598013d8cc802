#!/usr/bin/env python3

import decimal
import os
import re
import shlex
import uuid
from decimal import Decimal
from fractions import Fraction

#============================================

_QUIET_MODE = False
_COMMAND_REPORTER = None
_COMMAND_TOTAL = None
_COMMAND_INDEX = 0

#============================================

def set_quiet_mode(quiet: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(quiet)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def log_message(message: str) -> None:
	if is_quiet_mode():
		return
	print(message)

#============================================

def set_command_reporter(reporter) -> None:
	"""
	Register a callable that receives command start/end events.
	"""
	global _COMMAND_REPORTER
	global _COMMAND_INDEX
	_COMMAND_REPORTER = reporter
	_COMMAND_INDEX = 0

#============================================

def clear_command_reporter() -> None:
	global _COMMAND_REPORTER
	_COMMAND_REPORTER = None

#============================================

def set_command_total(total) -> None:
	global _COMMAND_TOTAL
	_COMMAND_TOTAL = total

#============================================

def command_prefix(index: int, total) -> str:
	if index <= 0:
		return ""
	if total is None or total <= 0:
		return f"[{index}]"
	return f"[{index}/{total}]"

#============================================

def format_command(args: list) -> str:
	showcmd = shlex.join([str(arg) for arg in args])
	showcmd = re.sub("  *", " ", showcmd)
	return showcmd

#============================================

def report_command_start(args: list) -> int:
	"""
	Echo a command and publish a start event, returning its index.
	"""
	global _COMMAND_INDEX
	_COMMAND_INDEX += 1
	showcmd = format_command(args)
	log_message(f"CMD: '{showcmd}'")
	if _COMMAND_REPORTER is not None:
		_COMMAND_REPORTER({
			'event': 'start',
			'index': _COMMAND_INDEX,
			'total': _COMMAND_TOTAL,
			'command': showcmd,
		})
	return _COMMAND_INDEX

#============================================

def report_command_end(args: list, index: int, returncode: int,
	seconds: float) -> None:
	if _COMMAND_REPORTER is None:
		return
	_COMMAND_REPORTER({
		'event': 'end',
		'index': index,
		'total': _COMMAND_TOTAL,
		'command': format_command(args),
		'returncode': returncode,
		'seconds': seconds,
	})

#============================================

def parse_fps(raw_fps) -> Fraction:
	if raw_fps is None:
		raise RuntimeError("profile.fps is required")
	if isinstance(raw_fps, int):
		fps = Fraction(raw_fps, 1)
	elif isinstance(raw_fps, float):
		fps = Fraction(str(raw_fps))
	elif isinstance(raw_fps, str):
		if '/' in raw_fps:
			parts = raw_fps.split('/')
			fps = Fraction(int(parts[0]), int(parts[1]))
		else:
			fps = Fraction(raw_fps)
	else:
		raise RuntimeError("profile.fps must be int, float, or fraction string")
	if fps <= 0:
		raise RuntimeError("profile.fps must be positive")
	return fps

#============================================

def parse_timecode(raw_time) -> Decimal:
	if raw_time is None:
		raise RuntimeError("time value is required")
	if isinstance(raw_time, bool):
		raise RuntimeError("time values must be int, float, or timecode string")
	if isinstance(raw_time, int):
		return Decimal(raw_time)
	if isinstance(raw_time, float):
		return Decimal(str(raw_time))
	if isinstance(raw_time, str):
		value = raw_time.strip()
		if ':' not in value:
			return Decimal(value)
		parts = value.split(':')
		seconds = Decimal(parts.pop())
		minutes = Decimal(parts.pop())
		hours = Decimal(0)
		if len(parts) > 0:
			hours = Decimal(parts.pop())
		return hours * Decimal(3600) + minutes * Decimal(60) + seconds
	raise RuntimeError("time values must be int, float, or timecode string")

#============================================

def seconds_to_millis(seconds) -> int:
	"""
	Convert seconds to integer milliseconds using half-up rounding.
	"""
	value = Decimal(str(seconds))
	millis = value * Decimal(1000)
	millis = millis.quantize(Decimal("1"), rounding=decimal.ROUND_HALF_UP)
	return int(millis)

#============================================

def parse_time_ms(raw_time) -> int:
	return seconds_to_millis(parse_timecode(raw_time))

#============================================

def millis_to_seconds_text(millis) -> str:
	"""
	Format milliseconds as an ffmpeg seconds argument, e.g. 1500 -> '1.5'.
	"""
	value = Decimal(int(millis)) / Decimal(1000)
	text = f"{value:.3f}".rstrip('0').rstrip('.')
	if text in ('', '-0'):
		return "0"
	return text

#============================================

def make_scratch_name(prefix: str, suffix: str) -> str:
	"""
	Random scratch file name so concurrent runs never collide.
	"""
	return f"{prefix}_{uuid.uuid4().hex}{suffix}"

#============================================

def ensure_file_exists(filepath: str) -> None:
	if not os.path.exists(filepath):
		raise RuntimeError(f"file not found: {filepath}")
	return
