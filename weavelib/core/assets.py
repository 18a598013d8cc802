#!/usr/bin/env python3

"""
Timeline inputs for the compositors.

Each kind of segment is its own immutable class carrying only the fields it
needs. Overlap resolution works on derived copies made with
dataclasses.replace(), so the values handed in by the timeline are never
mutated.
"""

import dataclasses
from weavelib.core.errors import MalformedInputError

#============================================

class _TimedInput():
	kind = None

	#============================
	def __post_init__(self):
		if self.end_time_ms <= self.start_time_ms:
			raise MalformedInputError(
				f"{self.kind} segment requires end > start "
				f"({self.start_time_ms}ms-{self.end_time_ms}ms)"
			)

	#============================
	@property
	def duration_ms(self) -> int:
		return self.end_time_ms - self.start_time_ms

	#============================
	@property
	def duration_secs(self) -> float:
		return self.duration_ms / 1000.0

	#============================
	def with_range(self, start_time_ms: int, end_time_ms: int):
		return dataclasses.replace(self, start_time_ms=start_time_ms,
			end_time_ms=end_time_ms)

	#============================
	def describe(self) -> dict:
		info = {
			'kind': self.kind,
			'start_ms': self.start_time_ms,
			'end_ms': self.end_time_ms,
		}
		return info

#============================================

@dataclasses.dataclass(frozen=True)
class EmptyInput(_TimedInput):
	start_time_ms: int
	end_time_ms: int
	kind = 'empty'

	#============================
	@property
	def data(self):
		return None

#============================================

@dataclasses.dataclass(frozen=True)
class ImageInput(_TimedInput):
	data: bytes = dataclasses.field(repr=False)
	start_time_ms: int
	end_time_ms: int
	width: int
	height: int
	kind = 'image'

	#============================
	def describe(self) -> dict:
		info = super().describe()
		info['size'] = [self.width, self.height]
		return info

#============================================

@dataclasses.dataclass(frozen=True)
class VideoInput(_TimedInput):
	data: bytes = dataclasses.field(repr=False)
	start_time_ms: int
	end_time_ms: int
	width: int
	height: int
	framerate: float
	kind = 'video'

	#============================
	def describe(self) -> dict:
		info = super().describe()
		info['size'] = [self.width, self.height]
		info['fps'] = self.framerate
		return info

#============================================

@dataclasses.dataclass(frozen=True)
class AudioInput(_TimedInput):
	# None when the clip content is not available yet
	data: bytes = dataclasses.field(repr=False)
	start_time_ms: int
	end_time_ms: int
	kind = 'audio'
