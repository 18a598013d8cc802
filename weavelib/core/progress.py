#!/usr/bin/env python3

"""
Progress accounting for multi-step engine work.

Engine log lines carry a `time=HH:MM:SS.CC` position; that position is turned
into a 0-100 figure for one request, rescaled into the Stage assigned to the
request, and combined into one value that never moves backwards.
"""

import contextlib
import re
from weavelib.core import utils

#============================================

# `frame` lines are emitted for video output, `size` lines for audio output
PROGRESS_PREFIXES = ('frame', 'size')
TIME_REGEX = re.compile(r"time=(\d{2}):(\d{2}):(\d{2})\.(\d{2})")

#============================================

def derive_progress_ms(log_line: str):
	"""
	Extract the encoded position of a progress line in milliseconds.

	Args:
		log_line: One engine log line.

	Returns:
		int or None: Position in milliseconds, None for other lines.
	"""
	if log_line is None:
		return None
	line = log_line.strip()
	if not line.startswith(PROGRESS_PREFIXES):
		return None
	match = TIME_REGEX.search(line)
	if match is None:
		return None
	hours = int(match.group(1))
	minutes = int(match.group(2))
	seconds = int(match.group(3))
	centiseconds = int(match.group(4))
	return hours * 3600000 + minutes * 60000 + seconds * 1000 + centiseconds * 10

#============================================

def derive_progress(log_line: str, total_time_ms: float):
	"""
	Convert a progress line into a percent of `total_time_ms`.

	Args:
		log_line: One engine log line.
		total_time_ms: Expected output duration of the request.

	Returns:
		float or None: Percent in [0, 100], None when the line is not progress.
	"""
	time_ms = derive_progress_ms(log_line)
	if time_ms is None:
		return None
	if total_time_ms is None or total_time_ms <= 0:
		return 100.0
	return clamp_percent(time_ms * 100.0 / total_time_ms)

#============================================

def clamp_percent(value: float) -> float:
	if value < 0:
		return 0.0
	if value > 100:
		return 100.0
	return float(value)

#============================================

def scale_progress(raw_percent: float, stage_start: float,
	stage_target: float) -> float:
	"""
	Map [0, 100] linearly onto [stage_start, stage_target].

	scale_progress(50, 50, 100) == 75
	"""
	return stage_start + (raw_percent * (stage_target - stage_start)) / 100.0

#============================================

def combine_progress(parts: list) -> float:
	"""
	Weighted combination of (weight, raw_percent) pairs into one percent.
	"""
	total_weight = 0.0
	total = 0.0
	for weight, raw_percent in parts:
		if weight <= 0:
			continue
		total_weight += weight
		total += weight * clamp_percent(raw_percent)
	if total_weight <= 0:
		return 100.0
	return total / total_weight

#============================================

class Stage():
	"""
	A closed sub-range of the overall 0-100 progress scale.
	"""
	def __init__(self, start_percent: float, target_percent: float):
		if target_percent < start_percent:
			raise ValueError("stage target must not be below its start")
		self.start_percent = float(start_percent)
		self.target_percent = float(target_percent)

	#============================
	def __repr__(self) -> str:
		return f"Stage({self.start_percent:g}, {self.target_percent:g})"

	#============================
	def __eq__(self, other) -> bool:
		if not isinstance(other, Stage):
			return NotImplemented
		return (self.start_percent == other.start_percent
			and self.target_percent == other.target_percent)

	#============================
	@property
	def span(self) -> float:
		return self.target_percent - self.start_percent

	#============================
	def scale(self, raw_percent: float) -> float:
		return scale_progress(clamp_percent(raw_percent), self.start_percent,
			self.target_percent)

	#============================
	def split(self, weights: list) -> list:
		"""
		Partition this stage into consecutive sub-stages sized by weight.
		"""
		total_weight = float(sum(weights))
		stages = []
		cursor = self.start_percent
		for index, weight in enumerate(weights):
			if index == len(weights) - 1:
				end = self.target_percent
			elif total_weight <= 0:
				end = cursor
			else:
				end = cursor + self.span * weight / total_weight
			stages.append(Stage(cursor, min(end, self.target_percent)))
			cursor = min(end, self.target_percent)
		return stages

#============================================

class ProgressTracker():
	"""
	Forward progress to a `(percent, message)` callback without ever going
	backwards.
	"""
	def __init__(self, callback=None):
		self.callback = callback
		self.percent = 0.0
		self.message = ""

	#============================
	def report(self, percent: float, message: str = None) -> float:
		percent = clamp_percent(percent)
		if percent < self.percent:
			percent = self.percent
		self.percent = percent
		if message is not None:
			self.message = message
		if self.callback is not None:
			self.callback(self.percent, self.message)
		return self.percent

#============================================

class WeightedProgress():
	"""
	Running total of a stage split between weighted entries.

	Every entry owns the sub-stage Stage.split() gives it and reports its own
	cumulative 0-100 figure, possibly many times; the amount an entry
	contributed before is subtracted so it is not counted twice.
	"""
	def __init__(self, stage: Stage, weights: list):
		self.stage = stage
		self.stages = stage.split(weights)
		self.collected = [0.0 for _ in weights]
		self.running_total = 0.0

	#============================
	def update(self, index: int, raw_percent: float) -> float:
		contribution = self.stages[index].span * clamp_percent(raw_percent) / 100.0
		self.running_total += contribution - self.collected[index]
		self.collected[index] = contribution
		return self.current()

	#============================
	def complete(self, index: int) -> float:
		return self.update(index, 100.0)

	#============================
	def current(self) -> float:
		return min(self.stage.start_percent + self.running_total,
			self.stage.target_percent)

#============================================

@contextlib.asynccontextmanager
async def capture_progress(session, total_time_ms: float, on_raw):
	"""
	Listen to the session log for the duration of one engine request.

	Args:
		session: Engine session exposing on_log().
		total_time_ms: Expected output duration of the request.
		on_raw: Called with the raw 0-100 percent of this request.
	"""
	state = {'active': True}

	def _listener(line: str) -> None:
		if not state['active']:
			return
		percent = derive_progress(line, total_time_ms)
		if percent is None:
			return
		on_raw(percent)

	remove_listener = session.on_log(_listener)
	try:
		yield
	finally:
		state['active'] = False
		remove_listener()

#============================================

def format_percent(percent: float) -> str:
	return f"{percent:5.1f}%"

#============================================

def make_console_reporter(prefix: str = ""):
	"""
	Progress callback that prints whole-percent changes.
	"""
	state = {'last': None}

	def _report(percent: float, message: str) -> None:
		whole = int(percent)
		key = (whole, message)
		if key == state['last']:
			return
		state['last'] = key
		utils.log_message(f"{prefix}{format_percent(percent)} {message}")

	return _report
